"""CLI entrypoints for dronehive commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .context import BuildContext
from .config import load_config
from .errors import DroneHiveError
from .lifecycle import LifecycleManager
from .logging import configure_logging
from .orchestrator import Orchestrator
from .registry.drones import DroneRegistry, FilterMode, find_host
from .worker import run_build_worker


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_drone_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Name of the drone.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dronehive",
        description="Assimilate, build and remove drones vendored as git submodules.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--host",
        default=".",
        help="Path inside the host repository (defaults to current directory).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log output to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    simple_commands = {
        "build": "Rebuild all drones and init files.",
        "quick": "Rebuild most drones and init files, skipping drones with build steps.",
        "build-init": "Rebuild init files.",
        "clean": "Remove all byte-code files of all drones.",
        "clean-init": "Remove byte-code files of the init files.",
        "bootstrap": "Check out missing drones, then rebuild everything.",
    }
    for command, help_text in simple_commands.items():
        sub = subparsers.add_parser(command, help=help_text)
        _add_verbose_option(sub, suppress_default=True)

    build_drone_parser = subparsers.add_parser("build-drone", help="Rebuild a single drone.")
    _add_verbose_option(build_drone_parser, suppress_default=True)
    _add_drone_argument(build_drone_parser)
    build_drone_parser.add_argument(
        "--worker",
        action="store_true",
        help="Build in a separate process and stream its output.",
    )

    assimilate_parser = subparsers.add_parser(
        "assimilate", help="Add a drone as a submodule and build it."
    )
    _add_verbose_option(assimilate_parser, suppress_default=True)
    _add_drone_argument(assimilate_parser)
    assimilate_parser.add_argument("url", help="Repository URL of the drone.")
    assimilate_parser.add_argument(
        "--partially",
        action="store_true",
        help="Register the drone without building or activating it.",
    )

    clone_parser = subparsers.add_parser(
        "clone", help="Clone a drone without registering it as a submodule."
    )
    _add_verbose_option(clone_parser, suppress_default=True)
    _add_drone_argument(clone_parser)
    clone_parser.add_argument("url", help="Repository URL of the drone.")

    remove_parser = subparsers.add_parser("remove", help="Remove a drone's worktree.")
    _add_verbose_option(remove_parser, suppress_default=True)
    _add_drone_argument(remove_parser)

    list_parser = subparsers.add_parser("list", help="List drones.")
    _add_verbose_option(list_parser, suppress_default=True)
    selection = list_parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--assimilating",
        action="store_true",
        help="List registered drones that have no worktree yet.",
    )
    selection.add_argument(
        "--cloned",
        action="store_true",
        help="List every directory in the drones directory.",
    )
    selection.add_argument(
        "--paths",
        action="store_true",
        help="List submodules located in the drones directory.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--bind", default="127.0.0.1", help="Address to listen on.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _open_registry(host: str, *, batch: bool) -> DroneRegistry:
    root = find_host(Path(host))
    context = BuildContext(settings=load_config(root), batch=batch)
    return DroneRegistry(root, context=context)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for dronehive commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    command = args.command
    try:
        if command == "serve":
            try:
                from .service import run_service
            except ModuleNotFoundError as exc:
                parser.exit(
                    1,
                    f"Service mode requires {exc.name}. Install it with `pip install dronehive[service]`.\n",
                )

            run_service(Path(args.host), host=args.bind, port=args.port)
            return

        registry = _open_registry(args.host, batch=True)
        orchestrator = Orchestrator(registry)

        if command in {"build", "quick"}:
            report = orchestrator.rebuild_all(quick=command == "quick")
            print(report.summary())
        elif command == "build-init":
            tally = orchestrator.rebuild_init()
            print(f"Init files: {tally.summary()}")
        elif command == "clean":
            removed = orchestrator.clean()
            print(f"Removed {len(removed)} byte-code files")
        elif command == "clean-init":
            removed = orchestrator.clean_init()
            print(f"Removed {len(removed)} byte-code files")
        elif command == "bootstrap":
            names = LifecycleManager(registry, orchestrator.builder).bootstrap()
            print(f"Bootstrapped {len(names)} drones")
            report = orchestrator.rebuild_all()
            print(report.summary())
        elif command == "build-drone":
            if args.worker:
                returncode = run_build_worker(args.name, registry.host, print)
                if returncode != 0:
                    parser.exit(returncode, f"Building {args.name} failed\n")
            else:
                result = orchestrator.build_drone(args.name)
                if result.tally is not None:
                    print(f"{args.name}: {result.tally.summary()}")
                else:
                    print(f"{args.name}: ran {len(result.steps)} build steps")
        elif command == "assimilate":
            LifecycleManager(registry, orchestrator.builder).assimilate(
                args.name, args.url, partially=bool(args.partially)
            )
            print(f"Assimilated {args.name}")
        elif command == "clone":
            LifecycleManager(registry, orchestrator.builder).clone(args.name, args.url)
            print(f"Cloned {args.name}")
        elif command == "remove":
            LifecycleManager(registry, orchestrator.builder).remove(args.name)
            print(f"Removed {args.name}")
        elif command == "list":
            if args.cloned:
                names = registry.list_cloned_only()
            elif args.paths:
                names = registry.list_worktree_paths()
            elif args.assimilating:
                names = registry.list_assimilated(filter_mode=FilterMode.ASSIMILATING)
            else:
                names = registry.list_assimilated()
            for name in names:
                print(name)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except DroneHiveError as exc:
        parser.exit(1, f"dronehive {command} failed: {exc}\nRun with --verbose for more details.\n")


if __name__ == "__main__":
    main(sys.argv[1:])
