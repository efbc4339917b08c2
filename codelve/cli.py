"""CLI entrypoints for codelve commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

from .config import ConfigError, CodelveConfig, load_config
from .engine import Engine
from .events import Event, Response, ResponseKind, ScanFinished, ScanProgress
from .logging import configure_logging

PROMPT = "> "


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


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the codebase root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codelve",
        description="Ask questions about a local codebase using a local language model.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .codelve.yml file or the directory containing it.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="Index a codebase and print a summary.")
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_path_argument(scan_parser)

    ask_parser = subparsers.add_parser("ask", help="Index a codebase and answer a single question.")
    _add_verbose_option(ask_parser, suppress_default=True)
    ask_parser.add_argument("query", help="Question to ask about the codebase.")
    _add_path_argument(ask_parser)
    ask_parser.add_argument(
        "--stream",
        action="store_true",
        help="Print the response as it is generated.",
    )

    chat_parser = subparsers.add_parser("chat", help="Start an interactive session over a codebase.")
    _add_verbose_option(chat_parser, suppress_default=True)
    _add_path_argument(chat_parser)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codelve commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file, level=config.log_level)

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port, config=config)
        return

    with Engine(config) as engine:
        if not _scan(engine, args.path):
            parser.exit(1, f"codelve {args.command} failed: unable to index {args.path}\n")

        if args.command == "scan":
            print(engine.status)
        elif args.command == "ask":
            response = _ask(engine, args.query, stream=bool(args.stream))
            if response.is_error:
                parser.exit(1, f"{response.text}\n")
        elif args.command == "chat":
            run_chat(engine)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")


def run_chat(
    engine: Engine,
    *,
    read: Callable[[str], str] = input,
    out: TextIO | None = None,
) -> None:
    """Read queries until EOF or an exit command, printing each response."""
    stream = out or sys.stdout
    print(engine.help_text(), file=stream)
    while True:
        try:
            query = read(PROMPT)
        except EOFError:
            break
        if not query.strip():
            continue
        response = engine.submit_query(query).result()
        if response.kind is ResponseKind.EXIT:
            print(response.text, file=stream)
            break
        print(response.text, file=stream)


def _ask(engine: Engine, query: str, *, stream: bool) -> Response:
    if not stream:
        response = engine.submit_query(query).result()
        if not response.is_error:
            print(response.text)
        return response

    def _print_token(token: str, is_last: bool) -> None:
        print(token, end="\n" if is_last else "", flush=True)

    return engine.submit_query(query, on_token=_print_token).result()


def _scan(engine: Engine, path: str) -> bool:
    finished: list[ScanFinished] = []

    def _report(event: Event) -> None:
        if isinstance(event, ScanProgress):
            print(f"\r{event.stage}: {event.progress:.0%}", end="", file=sys.stderr, flush=True)
        elif isinstance(event, ScanFinished):
            print(file=sys.stderr)
            finished.append(event)

    engine.events.subscribe(_report)
    try:
        if not engine.scan(path):
            return False
        engine.wait_for_scan()
    finally:
        engine.events.unsubscribe(_report)
    return bool(finished) and finished[-1].success


def _load_config(args: argparse.Namespace) -> CodelveConfig:
    explicit: Optional[Path] = args.config
    if explicit is not None:
        return load_config(explicit)
    path = getattr(args, "path", None)
    return load_config(Path(path) if path else Path.cwd())


if __name__ == "__main__":
    main(sys.argv[1:])
