from __future__ import annotations

import re
import threading
import uuid
from typing import Dict, Union

from pastebin_server.clipboard.models import KeyedEntry
from pastebin_server.errors import BadRequestError, NotFoundError

_IDENTIFIER_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|[0-9a-f]{32}",
    re.ASCII | re.IGNORECASE,
)


def parse_identifier(identifier: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(identifier, uuid.UUID):
        return identifier
    text = str(identifier)
    # uuid.UUID also tolerates braces, signs and non-ASCII digits.
    if not _IDENTIFIER_RE.fullmatch(text):
        raise BadRequestError(f"malformed entry id: {identifier!r}")
    return uuid.UUID(text)


class KeyedClipboard:
    """Thread-safe unbounded clipboard addressed by random UUIDs."""

    def __init__(self) -> None:
        self._entries: Dict[uuid.UUID, KeyedEntry] = {}
        self._lock = threading.Lock()

    def add(self, data: str) -> uuid.UUID:
        # uuid4 draws from os.urandom; collisions are not defended against.
        entry_id = uuid.uuid4()
        with self._lock:
            self._entries[entry_id] = KeyedEntry(id=entry_id, data=data)
        return entry_id

    def get(self, identifier: Union[str, uuid.UUID]) -> KeyedEntry:
        entry_id = parse_identifier(identifier)
        with self._lock:
            entry = self._entries.get(entry_id)
        if entry is None:
            raise NotFoundError(f"no entry with id {entry_id}")
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
