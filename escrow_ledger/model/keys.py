from __future__ import annotations
"""
Storage keys for the escrow ledger as a closed tagged union.

    EscrowKey(id)                  -> EscrowRecord
    NextIdKey()                    -> int   (identifier allocator counter)
    UserCreatedKey(principal)      -> int   (number of index entries)
    UserReceivedKey(principal)     -> int   (number of index entries)
    IndexEntryKey(index, position) -> int   (one escrow id)

A principal's created/received index is an append-only sequence: the index
key holds its length and every element lives under its own IndexEntryKey,
so appending never rewrites earlier entries and no single value grows with
the history. `LedgerState` presents the pair as a plain List[int].

Byte layout (stable; used as the record-store key):

    b"esc/" + tag + b"/" + payload

where the payload is the 8-byte big-endian id for EscrowKey, empty for
NextIdKey, the UTF-8 principal for the index keys, and the 8-byte position
followed by the UTF-8 principal for entry keys. `decode_key` inverts
`encode` so tooling can list a store's contents.
"""


from dataclasses import dataclass
from typing import ClassVar, Dict, Type, Union

from ..errors import ValidationError
from .escrow import U64_MAX

KEY_PREFIX = b"esc/"

# Entry tags are the owning index tag plus this suffix.
_ENTRY_SUFFIX = b".n"


def _check_u64(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not (0 <= value <= U64_MAX):
        raise ValidationError(f"{name} must be a u64", details={name: repr(value)})


@dataclass(frozen=True)
class _Key:
    tag: ClassVar[bytes] = b""

    def payload(self) -> bytes:
        return b""

    def encode(self) -> bytes:
        return KEY_PREFIX + self.tag + b"/" + self.payload()


@dataclass(frozen=True)
class EscrowKey(_Key):
    tag: ClassVar[bytes] = b"escrow"
    id: int

    def __post_init__(self) -> None:
        _check_u64("id", self.id)

    def payload(self) -> bytes:
        return self.id.to_bytes(8, "big")


@dataclass(frozen=True)
class NextIdKey(_Key):
    tag: ClassVar[bytes] = b"next_id"


@dataclass(frozen=True)
class UserCreatedKey(_Key):
    tag: ClassVar[bytes] = b"created"
    principal: str

    def payload(self) -> bytes:
        return self.principal.encode("utf-8")


@dataclass(frozen=True)
class UserReceivedKey(_Key):
    tag: ClassVar[bytes] = b"received"
    principal: str

    def payload(self) -> bytes:
        return self.principal.encode("utf-8")


IndexKey = Union[UserCreatedKey, UserReceivedKey]


@dataclass(frozen=True)
class IndexEntryKey:
    """Element `position` (0-based) of a created/received index."""

    index: IndexKey
    position: int

    def __post_init__(self) -> None:
        _check_u64("position", self.position)

    def encode(self) -> bytes:
        return (
            KEY_PREFIX
            + self.index.tag
            + _ENTRY_SUFFIX
            + b"/"
            + self.position.to_bytes(8, "big")
            + self.index.payload()
        )


DataKey = Union[EscrowKey, NextIdKey, UserCreatedKey, UserReceivedKey, IndexEntryKey]

_BY_TAG: Dict[bytes, Type[_Key]] = {
    cls.tag: cls for cls in (EscrowKey, NextIdKey, UserCreatedKey, UserReceivedKey)
}
_INDEX_BY_ENTRY_TAG: Dict[bytes, Type[_Key]] = {
    cls.tag + _ENTRY_SUFFIX: cls for cls in (UserCreatedKey, UserReceivedKey)
}


def decode_key(raw: bytes) -> DataKey:
    """Inverse of `DataKey.encode()`. Raises ValueError for foreign keys."""
    if not raw.startswith(KEY_PREFIX):
        raise ValueError(f"not an escrow key: {raw!r}")
    tag, sep, payload = raw[len(KEY_PREFIX):].partition(b"/")
    if not sep:
        raise ValueError(f"unknown escrow key tag: {raw!r}")
    index_cls = _INDEX_BY_ENTRY_TAG.get(tag)
    if index_cls is not None:
        if len(payload) < 8:
            raise ValueError(f"index entry key payload too short: {raw!r}")
        position = int.from_bytes(payload[:8], "big")
        index = index_cls(payload[8:].decode("utf-8"))  # type: ignore[call-arg]
        return IndexEntryKey(index, position)  # type: ignore[arg-type]
    cls = _BY_TAG.get(tag)
    if cls is None:
        raise ValueError(f"unknown escrow key tag: {raw!r}")
    if cls is EscrowKey:
        if len(payload) != 8:
            raise ValueError(f"escrow key payload must be 8 bytes: {raw!r}")
        return EscrowKey(int.from_bytes(payload, "big"))
    if cls is NextIdKey:
        return NextIdKey()
    return cls(payload.decode("utf-8"))  # type: ignore[call-arg,return-value]


__all__ = [
    "KEY_PREFIX",
    "EscrowKey",
    "NextIdKey",
    "UserCreatedKey",
    "UserReceivedKey",
    "IndexKey",
    "IndexEntryKey",
    "DataKey",
    "decode_key",
]
