"""Normalization of the registry (.gitmodules) file."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Tuple

_SECTION_RE = re.compile(r'^\s*\[submodule\s+"(?P<name>[^"]+)"\s*\]\s*$')


def sort_submodule_sections(path: Path) -> bool:
    """Reorder ``[submodule "<name>"]`` sections by name.

    Lines before the first section stay at the top and every section keeps
    its own lines in their original order. Returns True when the file changed.
    """
    text = path.read_text(encoding="utf-8")
    preamble, sections = _split_sections(text.splitlines())
    ordered = sorted(sections, key=lambda section: section[0])
    lines = list(preamble)
    for _, body in ordered:
        lines.extend(body)
    updated = "\n".join(lines) + "\n" if lines else ""
    if updated == text:
        return False
    path.write_text(updated, encoding="utf-8")
    return True


def _split_sections(lines: List[str]) -> Tuple[List[str], List[Tuple[str, List[str]]]]:
    preamble: List[str] = []
    sections: List[Tuple[str, List[str]]] = []
    for line in lines:
        match = _SECTION_RE.match(line)
        if match:
            sections.append((match.group("name"), [line]))
        elif sections:
            sections[-1][1].append(line)
        else:
            preamble.append(line)
    return preamble, sections


__all__ = ["sort_submodule_sections"]
