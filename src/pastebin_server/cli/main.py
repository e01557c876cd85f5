from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote

from rich.console import Console
from rich.table import Table

from pastebin_server import __version__
from pastebin_server.client.http_client import error_message, fetch_json
from pastebin_server.client.watch import run_watch_tui
from pastebin_server.config.settings import Settings, build_settings
from pastebin_server.observability.event_log import EventLogger, tail_lines
from pastebin_server.server.http_server import run_clipboard_server


def _add_runtime_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data-dir", default=None)
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--capacity", type=int, default=None)
    parser.add_argument("--request-timeout", type=float, default=None)
    parser.add_argument("--log-level", type=str.upper, default=None, choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--allow-non-loopback", action="store_true", default=None)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    return build_settings(
        data_dir=getattr(args, "data_dir", None),
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        capacity=getattr(args, "capacity", None),
        request_timeout=getattr(args, "request_timeout", None),
        log_level=getattr(args, "log_level", None),
        allow_non_loopback=getattr(args, "allow_non_loopback", None),
    )


def _request(settings: Settings, path: str, *, method: str = "GET", payload: Optional[Dict[str, Any]] = None) -> Any:
    try:
        return fetch_json(
            base_url=settings.base_url,
            path=path,
            method=method,
            payload=payload,
            timeout=settings.request_timeout,
        )
    except HTTPError as exc:
        detail = error_message(exc.read()) or exc.reason
        raise RuntimeError(f"server answered {exc.code}: {detail}") from None
    except URLError as exc:
        raise RuntimeError(f"clipboard server unreachable at {settings.base_url}: {exc.reason}") from None


def _read_text(args: argparse.Namespace) -> str:
    text = getattr(args, "text", None)
    if text is None or text == "-":
        return sys.stdin.read()
    return str(text)


def handle_serve(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    run_clipboard_server(settings)
    return 0


def handle_status(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    payload = _request(settings, "/debug")
    table = Table(title=f"pastebin server status | {settings.base_url}")
    table.add_column("Field")
    table.add_column("Value")
    for key in [
        "status",
        "pid",
        "base_url",
        "capacity",
        "clipboard_size",
        "entries_size",
        "request_timeout",
        "log_level",
        "event_log_file",
    ]:
        table.add_row(key, str(payload.get(key)))
    Console().print(table)
    return 0


def handle_logs(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    path = EventLogger(settings.data_dir).path
    lines = tail_lines(path, limit=max(1, int(args.lines)))
    if not lines:
        print(f"No events found in {path}")
        return 0
    for line in lines:
        print(line)
    return 0


def handle_paste(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    data = _read_text(args)
    if args.keyed:
        body = _request(settings, "/entries", method="POST", payload={"data": data})
        print(body.get("id") if isinstance(body, dict) else body)
        return 0
    _request(settings, "/paste", method="POST", payload={"data": data})
    return 0


def handle_copy(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    if args.id:
        entry = _request(settings, f"/entries/{quote(args.id, safe='')}")
        if args.json:
            print(json.dumps(entry, ensure_ascii=False, indent=2))
        else:
            print(entry.get("data", ""))
        return 0

    entries: List[Dict[str, Any]] = [item for item in _request(settings, "/copy") if isinstance(item, dict)]
    if args.json:
        print(json.dumps(entries, ensure_ascii=False, indent=2))
        return 0
    if not entries:
        print("Clipboard is empty", file=sys.stderr)
        return 0
    table = Table(title=f"pastebin clipboard | {settings.base_url}")
    table.add_column("#", no_wrap=True)
    table.add_column("Data")
    for index, entry in enumerate(entries, start=1):
        table.add_row(str(index), str(entry.get("data", "")))
    Console().print(table)
    return 0


def handle_watch(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    try:
        run_watch_tui(base_url=settings.base_url, interval=max(0.1, float(args.interval)))
    except KeyboardInterrupt:
        return 0
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="shared volatile clipboard over HTTP",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser(
        "serve",
        help="run the clipboard server",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "Quick one-liners:\n"
            "  serve on the default port:\n"
            "    pastebin serve\n"
            "  share on the LAN with a bigger clipboard:\n"
            "    pastebin serve --host 0.0.0.0 --allow-non-loopback --capacity 50\n"
        ),
    )
    _add_runtime_options(serve_parser)
    serve_parser.set_defaults(handler=handle_serve)

    status_parser = sub.add_parser("status", help="show a running server's status")
    _add_runtime_options(status_parser)
    status_parser.set_defaults(handler=handle_status)

    logs_parser = sub.add_parser("logs", help="tail the event log")
    _add_runtime_options(logs_parser)
    logs_parser.add_argument("--lines", type=int, default=120)
    logs_parser.set_defaults(handler=handle_logs)

    paste_parser = sub.add_parser("paste", help="submit text (stdin when TEXT is omitted or `-`)")
    _add_runtime_options(paste_parser)
    paste_parser.add_argument("text", nargs="?", default=None)
    paste_parser.add_argument("--keyed", action="store_true", help="store under a new id and print it")
    paste_parser.set_defaults(handler=handle_paste)

    copy_parser = sub.add_parser("copy", help="list the clipboard, or fetch one keyed entry by id")
    _add_runtime_options(copy_parser)
    copy_parser.add_argument("id", nargs="?", default=None)
    copy_parser.add_argument("--json", action="store_true", help="machine-readable output")
    copy_parser.set_defaults(handler=handle_copy)

    watch_parser = sub.add_parser("watch", help="live view of the clipboard")
    _add_runtime_options(watch_parser)
    watch_parser.add_argument("--interval", type=float, default=1.0)
    watch_parser.set_defaults(handler=handle_watch)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2
    try:
        return int(handler(args))
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
