#!/usr/bin/env python3
"""
codecollector CLI - dependency-closure context bundles for Java/Kotlin.

Usage:
    codecollector collect [paths...] [--project]   Collect files into one stream
    codecollector init [--project]                 Write default settings
    codecollector ignores [--project] [--check]    Show or test ignore rules
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .modules.core.collector import CollectionMode, ContextCollector
from .modules.core.errors import ERR_INTERNAL, ERR_NOT_FOUND, make_config_error, make_error
from .modules.core.ignore import compile_rules, is_ignored
from .modules.core.output_formats import format_contexts, summarize_contexts
from .modules.core.settings import SETTINGS_FILENAME, ensure_settings_file, load_settings
from .modules.core.workspace import relative_path


def _machine_output(result: dict | list, args) -> None:
    """Print result in machine-readable format if --machine flag is set.

    For --machine mode, wraps result in success envelope:
    {"success": true, "result": <result>}

    Otherwise prints with standard indentation.
    """
    if getattr(args, "machine", False):
        wrapped = {"success": True, "result": result}
        print(json.dumps(wrapped, separators=(",", ":"), ensure_ascii=False))
    else:
        print(json.dumps(result, indent=2))


def _print_error(code: str, message: str, args, **details) -> None:
    if getattr(args, "machine", False):
        print(json.dumps(make_error(code, message, **details)))
    else:
        print(f"Error: {message}", file=sys.stderr)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _cmd_collect(args) -> int:
    project = Path(args.project).resolve()
    if not project.is_dir():
        raise FileNotFoundError(f"Project directory '{args.project}' not found")

    settings = load_settings(project)
    if args.no_ignore:
        settings.ignore_rules = []

    mode = CollectionMode(args.mode)
    if mode is not CollectionMode.ALL and not args.paths:
        raise ValueError(f"{mode.value} mode needs at least one path")
    seeds = [os.path.abspath(p) for p in args.paths]

    collector = ContextCollector(project, settings=settings)
    contexts = collector.collect(seeds, mode)
    text = format_contexts(contexts)
    summary = summarize_contexts(contexts, text)
    selected = len(seeds) if mode is not CollectionMode.ALL else 1

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")

    if args.machine:
        _machine_output(
            {
                "mode": mode.value,
                "files": [ctx.relative_path for ctx in contexts],
                "lines": summary["lines"],
                "tokens": summary["tokens"],
                "text": text,
                "output": args.output,
            },
            args,
        )
        return 0

    if not args.output:
        sys.stdout.write(text)
        sys.stdout.flush()
    print(
        f"Collected {summary['files']} files ({summary['lines']} lines, "
        f"~{summary['tokens']} tokens) from {selected} selected",
        file=sys.stderr,
    )
    return 0


def _cmd_init(args) -> int:
    project = Path(args.project)
    if not project.is_dir():
        raise FileNotFoundError(f"Project directory '{args.project}' not found")
    created, message = ensure_settings_file(project)
    if args.machine:
        _machine_output({"created": created, "message": message}, args)
    else:
        print(message)
    return 0


def _cmd_ignores(args) -> int:
    project = Path(args.project).resolve()
    if not project.is_dir():
        raise FileNotFoundError(f"Project directory '{args.project}' not found")
    settings_file = project / SETTINGS_FILENAME
    if settings_file.exists():
        try:
            json.loads(settings_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            error = make_config_error(str(settings_file), str(exc))
            if args.machine:
                print(json.dumps(error))
            else:
                print(f"Error: {error['message']}", file=sys.stderr)
            return 1

    settings = load_settings(project)
    rules = sorted(settings.ignore_rules, key=lambda r: r.order)

    if args.check:
        target = Path(args.check)
        if not target.is_absolute():
            target = project / target
        rel = relative_path(target, project)
        ignored = is_ignored(rel, target.is_dir(), compile_rules(rules))
        if args.machine:
            _machine_output({"path": rel, "ignored": ignored}, args)
        else:
            print(f"{rel}: {'ignored' if ignored else 'included'}")
        return 0

    if args.machine:
        _machine_output(
            [{"order": r.order, "enabled": r.enabled, "pattern": r.pattern} for r in rules],
            args,
        )
    else:
        for r in rules:
            flag = " " if r.enabled else "#"
            print(f"{r.order:3d} {flag} {r.pattern}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="codecollector",
        description="Collect Java/Kotlin files and their project dependencies into one text stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Version: %(prog)s """ + __version__ + """

Examples:
    codecollector collect src/main/java/app/Main.java        # Main.java plus what it uses
    codecollector collect src/ --mode direct -o bundle.txt   # Selected files only
    codecollector collect --mode all --project .             # Whole project
    codecollector ignores --check build/Gen.java             # Is this path ignored?

Ignore Patterns:
    Rules live in .codecollector.json (gitignore syntax, later rules win).
    `codecollector init` writes the default list.
    Use --no-ignore to bypass ignore rules.
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--machine",
        action="store_true",
        help="Machine-readable output (forces JSON with consistent schema and error codes)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging on stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    collect_p = subparsers.add_parser("collect", help="Collect files into one annotated stream")
    collect_p.add_argument("paths", nargs="*", help="Selected files and directories")
    collect_p.add_argument("--project", default=".", help="Project root directory")
    collect_p.add_argument(
        "--mode",
        choices=[m.value for m in CollectionMode],
        default=CollectionMode.SMART.value,
        help="smart: follow references (default); direct: selection only; all: whole project",
    )
    collect_p.add_argument("-o", "--output", help="Write the stream to a file (stdout is left for the --machine envelope)")
    collect_p.add_argument(
        "--no-ignore",
        action="store_true",
        help="Ignore .codecollector.json patterns (include all files)",
    )

    init_p = subparsers.add_parser("init", help=f"Write default {SETTINGS_FILENAME}")
    init_p.add_argument("--project", default=".", help="Project root directory")

    ignores_p = subparsers.add_parser("ignores", help="List effective ignore rules")
    ignores_p.add_argument("--project", default=".", help="Project root directory")
    ignores_p.add_argument("--check", help="Report whether PATH is ignored")

    args = parser.parse_args()
    _configure_logging(args.verbose)

    try:
        if args.command == "collect":
            sys.exit(_cmd_collect(args))
        elif args.command == "init":
            sys.exit(_cmd_init(args))
        elif args.command == "ignores":
            sys.exit(_cmd_ignores(args))

    except FileNotFoundError as e:
        _print_error(ERR_NOT_FOUND, str(e), args)
        sys.exit(1)
    except ValueError as e:
        _print_error(ERR_INTERNAL, str(e), args)
        sys.exit(1)
    except Exception as e:
        _print_error(ERR_INTERNAL, str(e), args)
        sys.exit(1)


if __name__ == "__main__":
    main()
