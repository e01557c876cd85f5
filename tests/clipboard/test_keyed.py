from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from pastebin_server.clipboard.keyed import KeyedClipboard, parse_identifier
from pastebin_server.clipboard.models import KeyedEntry
from pastebin_server.errors import BadRequestError, NotFoundError


def test_keyed_add_then_get_returns_exact_data() -> None:
    store = KeyedClipboard()
    entry_id = store.add("x")

    entry = store.get(str(entry_id))
    assert entry == KeyedEntry(id=entry_id, data="x")
    assert entry.to_dict() == {"id": str(entry_id), "data": "x"}
    assert store.get(entry_id) is entry


def test_keyed_identical_data_gets_distinct_ids() -> None:
    store = KeyedClipboard()
    first = store.add("same")
    second = store.add("same")

    assert first != second
    assert len(store) == 2
    assert store.get(first).data == store.get(second).data == "same"


def test_keyed_ids_are_random_uuid4() -> None:
    entry_id = KeyedClipboard().add("data")
    assert entry_id.version == 4


def test_keyed_unknown_id_is_not_found() -> None:
    store = KeyedClipboard()
    store.add("x")
    with pytest.raises(NotFoundError):
        store.get(str(uuid.uuid4()))


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "not-a-uuid",
        "1234",
        "zzzzzzzz-zzzz-zzzz-zzzz-zzzzzzzzzzzz",
        "+0000000000000000000000000000000",
        "{{00000000000000000000000000000000}}",
        "{12345678-1234-5678-1234-567812345678}",
        "urn:uuid:12345678-1234-5678-1234-567812345678",
        "\u0660" * 32,
        " 12345678-1234-5678-1234-567812345678",
    ],
)
def test_keyed_malformed_id_is_bad_request(raw: str) -> None:
    with pytest.raises(BadRequestError):
        KeyedClipboard().get(raw)


def test_parse_identifier_accepts_canonical_and_uuid_values() -> None:
    value = uuid.uuid4()
    assert parse_identifier(value) is value
    assert parse_identifier(str(value).upper()) == value
    assert parse_identifier(value.hex) == value


def test_keyed_ten_thousand_ids_are_distinct() -> None:
    store = KeyedClipboard()
    ids = [store.add("payload") for _ in range(10_000)]

    assert len(set(ids)) == 10_000
    assert len(store) == 10_000


def test_keyed_concurrent_adds_are_all_retrievable() -> None:
    store = KeyedClipboard()
    values = [f"value-{index}" for index in range(400)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(store.add, values))

    assert len(set(ids)) == len(values)
    for entry_id, value in zip(ids, values):
        assert store.get(entry_id).data == value
