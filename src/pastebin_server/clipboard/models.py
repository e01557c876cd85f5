from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict

from pastebin_server.errors import InvalidPayloadError


@dataclass(frozen=True)
class Entry:
    data: str

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data}


@dataclass(frozen=True)
class KeyedEntry:
    id: uuid.UUID
    data: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": str(self.id), "data": self.data}


def entry_from_payload(payload: Any) -> Entry:
    if not isinstance(payload, dict):
        raise InvalidPayloadError("request body must be a JSON object")
    data = payload.get("data")
    if not isinstance(data, str):
        raise InvalidPayloadError("missing or non-string field `data`")
    return Entry(data=data)
