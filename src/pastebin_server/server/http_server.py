from __future__ import annotations

import json
import os
import signal
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple

from pastebin_server.clipboard.keyed import KeyedClipboard
from pastebin_server.clipboard.models import Entry, entry_from_payload
from pastebin_server.clipboard.ring import BoundedClipboard
from pastebin_server.config.settings import Settings
from pastebin_server.errors import (
    BadRequestError,
    ClipboardError,
    NotFoundError,
    PayloadTooLargeError,
    RequestTimeoutError,
)
from pastebin_server.observability.event_log import EventLogger
from pastebin_server.server.routes import ROUTE_METHODS, is_loopback_host, route_for

DEFAULT_MAX_REQUEST_BODY = 10 * 1024 * 1024

_clock = time.monotonic


@dataclass
class ClipboardRuntime:
    """Process-wide owner of both clipboard stores, shared by every handler thread."""

    settings: Settings
    keyed: KeyedClipboard = field(default_factory=KeyedClipboard)
    ring: BoundedClipboard = field(init=False)
    logger: EventLogger = field(init=False)

    def __post_init__(self) -> None:
        self.ring = BoundedClipboard(capacity=self.settings.capacity)
        self.logger = EventLogger(self.settings.data_dir, min_level=self.settings.log_level)

    def paste(self, entry: Entry) -> None:
        self.ring.add(entry)
        self.logger.write(
            level="DEBUG",
            event="clipboard.added",
            message="added clipboard entry",
            size=len(entry.data),
        )

    def copy(self) -> List[Dict[str, Any]]:
        self.logger.write(level="DEBUG", event="clipboard.listed", message="fetching clipboard")
        return [entry.to_dict() for entry in self.ring.snapshot()]

    def submit(self, data: str) -> str:
        entry_id = str(self.keyed.add(data))
        self.logger.write(
            level="DEBUG",
            event="entries.added",
            message="added keyed entry",
            id=entry_id,
            size=len(data),
        )
        return entry_id

    def fetch(self, identifier: str) -> Dict[str, Any]:
        try:
            entry = self.keyed.get(identifier)
        except NotFoundError:
            self.logger.write(level="INFO", event="entries.missing", message="keyed entry not found", id=identifier)
            raise
        self.logger.write(level="DEBUG", event="entries.fetched", message="fetched keyed entry", id=str(entry.id))
        return entry.to_dict()

    def debug_payload(self, host: str, port: int) -> Dict[str, Any]:
        return {
            "status": "running",
            "host": host,
            "port": port,
            "base_url": f"http://{host}:{port}",
            "data_dir": self.settings.data_dir,
            "capacity": self.ring.capacity,
            "clipboard_size": len(self.ring),
            "entries_size": len(self.keyed),
            "request_timeout": self.settings.request_timeout,
            "log_level": self.settings.log_level,
            "pid": os.getpid(),
            "event_log_file": str(self.logger.path),
        }

    def record_request(
        self,
        *,
        method: str,
        path: str,
        route: Optional[str],
        status: int,
        latency_ms: int,
        client_ip: Optional[str],
    ) -> None:
        self.logger.write(
            level="INFO" if status < 500 else "WARN",
            event="http.request",
            message="request completed",
            method=method,
            path=path,
            route=route,
            status=status,
            latency_ms=latency_ms,
            client_ip=client_ip,
        )


class ClipboardHTTPServer(ThreadingHTTPServer):
    def __init__(self, server_address: Tuple[str, int], runtime: ClipboardRuntime):
        super().__init__(server_address, ClipboardHandler)
        self.runtime = runtime

    def initiate_shutdown(self) -> None:
        threading.Thread(target=self.shutdown, daemon=True).start()


class ClipboardHandler(BaseHTTPRequestHandler):
    server: ClipboardHTTPServer

    def setup(self) -> None:
        # Socket timeout bounds every blocking read of the request.
        self.timeout = self.server.runtime.settings.request_timeout
        super().setup()

    def log_message(self, _format: str, *_args: object) -> None:
        return

    def do_GET(self) -> None:  # noqa: N802
        self._handle_request()

    def do_POST(self) -> None:  # noqa: N802
        self._handle_request()

    def do_PUT(self) -> None:  # noqa: N802
        self._handle_request()

    def do_PATCH(self) -> None:  # noqa: N802
        self._handle_request()

    def do_DELETE(self) -> None:  # noqa: N802
        self._handle_request()

    def _handle_request(self) -> None:
        runtime = self.server.runtime
        self._started = time.time()
        self._deadline = _clock() + runtime.settings.request_timeout
        self._responded = False
        route, param = route_for(self.path)
        self._route = route
        try:
            self._dispatch(route, param)
        except ClipboardError as exc:
            if self._responded:
                raise
            self._send_json(exc.status, {"error": exc.message})
        except Exception as exc:  # noqa: BLE001
            if self._responded:
                raise
            self._send_json(500, {"error": f"Unhandled internal error: {exc}"})
        finally:
            if not self._responded:
                self._record(500)

    def _dispatch(self, route: Optional[str], param: Optional[str]) -> None:
        runtime = self.server.runtime
        if route is None:
            self._send_json(404, {"error": "unknown route"})
            return
        allowed = ROUTE_METHODS[route]
        if self.command != allowed:
            self._send_json(405, {"error": "method not allowed"}, headers={"Allow": allowed})
            return

        if route == "paste":
            entry = entry_from_payload(self._read_json_body())
            self._check_deadline()
            runtime.paste(entry)
            self._send_json(200, {"status": "ok"})
            return
        if route == "copy":
            self._check_deadline()
            self._send_json(200, runtime.copy())
            return
        if route == "submit":
            entry = entry_from_payload(self._read_json_body())
            self._check_deadline()
            self._send_json(201, {"id": runtime.submit(entry.data)})
            return
        if route == "fetch":
            self._check_deadline()
            self._send_json(200, runtime.fetch(param or ""))
            return
        if route == "debug":
            host, port = self.server.server_address[:2]
            self._send_json(200, runtime.debug_payload(host=str(host), port=int(port)))
            return
        self._send_json(404, {"error": "unknown route"})

    def _record(self, status: int) -> None:
        # Recorded before the body is written so the event precedes the client seeing it.
        self.server.runtime.record_request(
            method=self.command,
            path=self.path,
            route=self._route,
            status=status,
            latency_ms=int((time.time() - self._started) * 1000),
            client_ip=self.client_address[0] if self.client_address else None,
        )

    def _check_deadline(self) -> None:
        if _clock() > self._deadline:
            raise RequestTimeoutError("request timed out")

    def _send_json(self, status: int, payload: Any, headers: Optional[Dict[str, str]] = None) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self._responded = True
        self._record(status)
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        for key, value in (headers or {}).items():
            self.send_header(key, value)
        self.end_headers()
        self.wfile.write(raw)

    def _read_json_body(self) -> Any:
        raw_length = self.headers.get("Content-Length", "0")
        try:
            length = int(raw_length)
        except (ValueError, OverflowError):
            self.close_connection = True
            raise BadRequestError("invalid content length") from None
        if length < 0:
            self.close_connection = True
            raise BadRequestError("invalid content length")
        if length > DEFAULT_MAX_REQUEST_BODY:
            self.close_connection = True
            raise PayloadTooLargeError("request body too large")
        if length == 0:
            raise BadRequestError("empty request body")
        try:
            body = self.rfile.read(length)
        except TimeoutError:
            self.close_connection = True
            raise RequestTimeoutError("request timed out") from None
        if len(body) < length:
            self.close_connection = True
            raise BadRequestError("incomplete request body")
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BadRequestError(f"invalid JSON body: {exc}") from None


def run_clipboard_server(settings: Settings) -> None:
    if not is_loopback_host(settings.host) and not settings.allow_non_loopback:
        raise ValueError("non-loopback bind blocked; use --allow-non-loopback to override")

    runtime = ClipboardRuntime(settings=settings)
    try:
        runtime.logger.ensure_writable()
    except OSError as exc:
        raise RuntimeError(f"data dir {settings.data_dir} is not writable: {exc}") from None
    server = ClipboardHTTPServer((settings.host, settings.port), runtime)
    bound_host, bound_port = server.server_address[:2]
    runtime.logger.write(
        level="INFO",
        event="server.started",
        message=f"listening on {bound_host}:{bound_port}",
        host=bound_host,
        port=bound_port,
        capacity=settings.capacity,
        request_timeout=settings.request_timeout,
    )

    stop_requested = False

    def _stop(_signum: int, _frame: object) -> None:
        nonlocal stop_requested
        if stop_requested:
            return
        stop_requested = True
        server.initiate_shutdown()

    previous_sigterm = signal.getsignal(signal.SIGTERM)
    previous_sigint = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)

    try:
        server.serve_forever(poll_interval=0.5)
    finally:
        server.server_close()
        signal.signal(signal.SIGTERM, previous_sigterm)
        signal.signal(signal.SIGINT, previous_sigint)
        runtime.logger.write(
            level="INFO",
            event="server.stopped",
            message="clipboard server stopped",
            host=bound_host,
            port=bound_port,
        )
