from __future__ import annotations

import itertools
import json
import socket
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Tuple

import pytest

from pastebin_server.config.settings import build_settings
from pastebin_server.server import http_server
from pastebin_server.server.http_server import ClipboardHTTPServer, ClipboardRuntime


@contextmanager
def _running_clipboard(*, data_dir: str, request_timeout: float) -> Iterator[Tuple[str, int, ClipboardRuntime]]:
    settings = build_settings(
        data_dir=data_dir,
        host="127.0.0.1",
        port=0,
        request_timeout=request_timeout,
    )
    runtime = ClipboardRuntime(settings=settings)
    server = ClipboardHTTPServer((settings.host, settings.port), runtime)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        host, port = server.server_address[:2]
        yield str(host), int(port), runtime
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=2.0)


def _raw_exchange(host: str, port: int, head: bytes) -> bytes:
    with socket.create_connection((host, port), timeout=5.0) as sock:
        sock.sendall(head)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def _status_and_body(raw: bytes) -> Tuple[int, dict]:
    head, _, body = raw.partition(b"\r\n\r\n")
    status_line = head.split(b"\r\n", 1)[0].decode("ascii")
    return int(status_line.split(" ")[1]), json.loads(body.decode("utf-8"))


def test_taad_stalled_body_times_out_with_408(tmp_path: Path) -> None:
    """TaaD Deadline: a body that never arrives is answered with 408, not a hang."""
    with _running_clipboard(data_dir=str(tmp_path), request_timeout=0.3) as (host, port, runtime):
        raw = _raw_exchange(
            host,
            port,
            b"POST /paste HTTP/1.1\r\nHost: test\r\nContent-Type: application/json\r\nContent-Length: 32\r\n\r\n",
        )
        status, body = _status_and_body(raw)
        assert status == 408
        assert body == {"error": "request timed out"}
        assert runtime.ring.snapshot() == []


def test_taad_oversized_body_is_rejected_before_reading(tmp_path: Path) -> None:
    with _running_clipboard(data_dir=str(tmp_path), request_timeout=5.0) as (host, port, _runtime):
        raw = _raw_exchange(
            host,
            port,
            b"POST /entries HTTP/1.1\r\nHost: test\r\nContent-Length: 999999999\r\n\r\n",
        )
        status, body = _status_and_body(raw)
        assert status == 413
        assert body == {"error": "request body too large"}


def test_taad_invalid_content_length_is_400(tmp_path: Path) -> None:
    with _running_clipboard(data_dir=str(tmp_path), request_timeout=5.0) as (host, port, _runtime):
        raw = _raw_exchange(
            host,
            port,
            b"POST /paste HTTP/1.1\r\nHost: test\r\nContent-Length: lots\r\n\r\n",
        )
        status, _body = _status_and_body(raw)
        assert status == 400


def test_taad_expired_deadline_skips_store_with_408(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """TaaD Deadline: a request past its deadline never reaches the store."""
    ticks = itertools.count(0.0, 100.0)
    monkeypatch.setattr(http_server, "_clock", lambda: next(ticks))
    body = b'{"data": "late"}'
    with _running_clipboard(data_dir=str(tmp_path), request_timeout=5.0) as (host, port, runtime):
        raw = _raw_exchange(host, port, b"GET /copy HTTP/1.1\r\nHost: test\r\n\r\n")
        status, payload = _status_and_body(raw)
        assert status == 408
        assert payload == {"error": "request timed out"}

        raw = _raw_exchange(
            host,
            port,
            b"POST /paste HTTP/1.1\r\nHost: test\r\nContent-Length: "
            + str(len(body)).encode("ascii")
            + b"\r\n\r\n"
            + body,
        )
        status, payload = _status_and_body(raw)
        assert status == 408
        assert runtime.ring.snapshot() == []
