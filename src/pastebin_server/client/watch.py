from __future__ import annotations

import time
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Set

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pastebin_server.client.http_client import fetch_json


def trim_preview(value: object, width: int = 60) -> str:
    raw = str(value or "").strip()
    compact = " ".join(raw.split())
    if not compact:
        return "-"
    if len(compact) > width:
        return f"{compact[:width]}..."
    return compact


def count_new_entries(previous: Sequence[str], current: Sequence[str]) -> int:
    """Number of entries appended since ``previous``, allowing for evictions at the head."""
    for shift in range(len(previous) + 1):
        kept = previous[shift:]
        if list(kept) == list(current[: len(kept)]):
            return len(current) - len(kept)
    return len(current)


def _entry_line(position: int, entry: Dict[str, Any], width: int = 60) -> tuple[str, str, str]:
    data = entry.get("data")
    size = str(len(data)) if isinstance(data, str) else "-"
    return str(position), trim_preview(data, width=width), size


class HighlightTracker:
    """Marks freshly pasted entries for a short window."""

    HIGHLIGHT_SECONDS: ClassVar[float] = 5.0

    def __init__(self) -> None:
        self._previous: List[str] = []
        self._highlight_until: List[float] = []
        self._initialized = False

    def update(self, entries: List[Dict[str, Any]]) -> Set[int]:
        current_time = time.time()
        current = [str(entry.get("data") or "") for entry in entries]

        if not self._initialized:
            self._initialized = True
            self._previous = current
            self._highlight_until = [0.0] * len(current)
            return set()

        fresh = count_new_entries(self._previous, current)
        retained = len(current) - fresh
        carried = self._highlight_until[len(self._highlight_until) - retained :] if retained else []
        self._highlight_until = carried + [current_time + self.HIGHLIGHT_SECONDS] * fresh
        self._previous = current
        return {index for index, until in enumerate(self._highlight_until) if until > current_time}


def _build_view(
    entries: List[Dict[str, Any]],
    *,
    highlight_ids: Set[int],
    base_url: str,
    last_error: Optional[str] = None,
) -> Panel:
    title = f"PASTEBIN | {base_url} | oldest-first | entries={len(entries)}"
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("DATA", style="white")
    table.add_column("LEN", style="dim", no_wrap=True)
    for index, entry in enumerate(entries):
        position, preview, size = _entry_line(index + 1, entry)
        if index in highlight_ids:
            table.add_row(position, Text(preview, style="green"), size, style="bold")
        else:
            table.add_row(position, preview, size)

    body: Any = table if entries else Text("clipboard is empty")
    if last_error:
        body = Panel(Text(f"error: {last_error}", style="red"), title="Watch Error", expand=True)
    return Panel(body, title=title, expand=True)


def run_watch_tui(*, base_url: str, interval: float = 1.0) -> None:
    console = Console()
    tracker = HighlightTracker()
    last_error: Optional[str] = None

    with Live(console=console, auto_refresh=False, screen=False) as live:
        while True:
            try:
                payload = fetch_json(base_url=base_url, path="/copy", timeout=2.0)
                if isinstance(payload, list):
                    entries = [item for item in payload if isinstance(item, dict)]
                else:
                    entries = []
                highlight_ids = tracker.update(entries)
                last_error = None
            except (OSError, ValueError) as exc:
                entries = []
                highlight_ids = set()
                last_error = str(exc)

            panel = _build_view(
                entries,
                highlight_ids=highlight_ids,
                base_url=base_url,
                last_error=last_error,
            )
            live.update(panel, refresh=True)
            time.sleep(max(0.1, interval))
