"""Tests for drone enumeration and path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from dronehive.errors import UnknownDrone
from dronehive.registry.drones import DRONES_DIRECTORY_ENV, FilterMode, find_host
from tests._fixtures.hive_builder import HiveBuilder


@pytest.fixture(autouse=True)
def _no_directory_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DRONES_DIRECTORY_ENV, raising=False)


def test_filter_modes_split_present_and_missing(hive: HiveBuilder) -> None:
    hive.add_drone("present")
    hive.add_drone("missing", present=False)
    registry = hive.registry()

    assert registry.list_assimilated() == ["present"]
    assert registry.list_assimilated(filter_mode=FilterMode.ASSIMILATING) == ["missing"]
    assert registry.list_assimilated(filter_mode=FilterMode.ALL) == ["missing", "present"]


def test_submodules_outside_drones_directory_are_ignored(hive: HiveBuilder) -> None:
    hive.add_drone("vendored", path="vendor/vendored")
    hive.add_drone("renamed", path="lib/other-name")
    registry = hive.registry()

    assert registry.list_assimilated(filter_mode=FilterMode.ALL) == ["renamed"]
    assert registry.list_assimilated() == ["renamed"]
    assert registry.list_worktree_paths() == ["renamed"]


def test_worktree_follows_registered_path(hive: HiveBuilder) -> None:
    hive.add_drone("renamed", path="lib/other-name")
    registry = hive.registry()

    assert registry.worktree("renamed") == hive.root / "lib" / "other-name"
    assert registry.drone("renamed").worktree == hive.root / "lib" / "other-name"
    assert registry.worktree("unregistered") == hive.root / "lib" / "unregistered"


def test_entries_without_path_default_to_drones_directory(hive: HiveBuilder) -> None:
    hive.write(
        {
            ".gitmodules": """
                [submodule "foo"]
                \tdisabled = true
                [submodule "bar"]
                \tbuild-step = echo hi
            """,
            "lib/bar/bar.py": "BAR = 1\n",
        }
    )
    registry = hive.registry()

    assert registry.list_assimilated(filter_mode=FilterMode.ALL) == ["bar", "foo"]
    assert registry.list_assimilated() == ["bar"]
    assert registry.list_assimilated(filter_mode=FilterMode.ASSIMILATING) == ["foo"]


def test_list_with_config_returns_properties(hive: HiveBuilder) -> None:
    hive.add_drone("x", load_path="src")
    registry = hive.registry()

    [(name, config)] = registry.list_assimilated(with_config=True)

    assert name == "x"
    assert config["load_path"] == ["src"]


def test_list_cloned_only_lists_every_visible_directory(hive: HiveBuilder) -> None:
    hive.add_drone("registered")
    (hive.root / "lib" / "cloned").mkdir()
    (hive.root / "lib" / ".hidden").mkdir()
    (hive.root / "lib" / "stray.py").write_text("", encoding="utf-8")

    assert hive.registry().list_cloned_only() == ["cloned", "registered"]


def test_drones_directory_defaults_follow_mode(hive: HiveBuilder) -> None:
    assert hive.registry().drones_directory == hive.root / "lib"
    assert hive.registry(secondary=True).drones_directory == hive.root / "profiles"
    assert hive.registry(drones_directory="site").drones_directory == hive.root / "site"


def test_drones_directory_prefers_git_config_then_environment(
    hive: HiveBuilder, monkeypatch: pytest.MonkeyPatch
) -> None:
    hive.git.responses[("config", "dronehive.drones-directory")] = (0, "from-git\n")
    assert hive.registry(drones_directory="site").drones_directory == hive.root / "from-git"

    monkeypatch.setenv(DRONES_DIRECTORY_ENV, "from-env")
    assert hive.registry().drones_directory == hive.root / "from-env"


def test_host_gitdir_and_drone_paths(hive: HiveBuilder) -> None:
    hive.add_drone("x")
    registry = hive.registry()

    drone = registry.drone("x")

    assert registry.host_gitdir == hive.root / ".git"
    assert drone.worktree == hive.root / "lib" / "x"
    assert drone.gitdir == hive.root / ".git" / "modules" / "x"
    assert drone.present


def test_invalid_names_are_rejected(hive: HiveBuilder) -> None:
    with pytest.raises(UnknownDrone):
        hive.registry().drone("../escape")


def test_drone_flags(hive: HiveBuilder) -> None:
    hive.add_drone("off", disabled="yes")
    hive.add_drone("slow", build_step="make")
    hive.add_drone("deep", recursive_byte_compile="true")
    hive.add_drone("plain")
    registry = hive.registry()

    assert registry.is_disabled("off")
    assert not registry.is_disabled("plain")
    assert registry.is_expensive("slow")
    assert not registry.is_expensive("plain")
    assert registry.is_recursive("deep")
    assert not registry.is_recursive("plain")
    assert hive.registry(compile_recursively=True).is_recursive("plain")


def test_resolve_load_path(hive: HiveBuilder) -> None:
    hive.add_drone("configured", {"a/m.py": "", "b/n.py": ""}, load_path=["a", "b"])
    hive.add_drone("conventional", {"lisp/m.py": ""})
    hive.add_drone("flat", {"m.py": ""})
    registry = hive.registry()
    lib = hive.root / "lib"

    assert registry.resolve_load_path("configured") == [lib / "configured" / "a", lib / "configured" / "b"]
    assert registry.resolve_load_path("conventional") == [lib / "conventional" / "lisp"]
    assert registry.resolve_load_path("flat") == [lib / "flat"]


def test_resolve_info_path(hive: HiveBuilder) -> None:
    hive.add_drone("x", {"doc/x.texi": "\\input texinfo\n", "docs/dir": "", "README": ""})
    registry = hive.registry()
    worktree = hive.root / "lib" / "x"

    assert registry.resolve_info_path("x", for_sources=True) == [worktree / "doc"]
    assert registry.resolve_info_path("x") == [worktree / "docs"]


def test_find_host_accepts_directory_with_registry(hive: HiveBuilder) -> None:
    hive.add_drone("x")

    assert find_host(hive.root) == hive.root


def test_find_host_falls_back_to_git_toplevel(tmp_path: Path) -> None:
    from dronehive.git.gateway import Git

    nested = tmp_path / "repo" / "sub"
    nested.mkdir(parents=True)

    def runner(args, cwd):  # type: ignore[no-untyped-def]
        return 0, f"{tmp_path / 'repo'}\n"

    assert find_host(nested, Git(nested, runner=runner)) == (tmp_path / "repo").resolve()
