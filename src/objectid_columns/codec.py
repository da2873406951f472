"""
ObjectId conversion between its canonical value and its two column encodings.

An ObjectId can show up in three shapes:

1. A ``bson.ObjectId`` instance (the canonical value handed to application code)
2. 12 raw bytes (stored in ``binary`` columns)
3. 24 hexadecimal characters (stored in ``string`` columns, always lowercase on output)

Everything here is pure and stateless.
"""
import enum
import re
from typing import Any

from bson import ObjectId
from libb import issequence

from objectid_columns.exceptions import InvalidIdentifierFormat

BINARY_OBJECTID_LENGTH = 12
STRING_OBJECTID_LENGTH = 24

BYTES_LIKE_TYPES = (bytes, bytearray, memoryview)

_HEX_REGEX = re.compile(r'[0-9a-fA-F]{24}')


class StorageKind(enum.Enum):
    """Physical encoding of an ObjectId column.
    """

    BINARY = 'binary'
    STRING = 'string'

    @classmethod
    def from_type_name(cls, type_name: str | None) -> 'StorageKind | None':
        """Map a schema-reported type name to a storage kind, or None.
        """
        if not isinstance(type_name, str):
            return None
        try:
            return cls(type_name.strip().lower())
        except ValueError:
            return None

    @property
    def required_length(self) -> int:
        return required_length(self)


def required_length(kind: StorageKind) -> int:
    """Number of bytes (binary) or characters (string) an ObjectId occupies.
    """
    if kind is StorageKind.BINARY:
        return BINARY_OBJECTID_LENGTH
    return STRING_OBJECTID_LENGTH


def is_valid_objectid(value: Any) -> bool:
    """Check whether value is already a canonical ObjectId.
    """
    return isinstance(value, ObjectId)


def is_objectid_like(value: Any) -> bool:
    """Check whether value has a shape the codec knows how to parse.

    Only the shape is checked; a 7-character string is ObjectId-like but
    will still fail :func:`parse`.
    """
    return isinstance(value, (ObjectId, str, *BYTES_LIKE_TYPES))


def is_sequence(value: Any) -> bool:
    """Check whether value is an ordered collection of operands (not text or bytes).
    """
    return issequence(value) and not isinstance(value, (str, *BYTES_LIKE_TYPES))


def parse(value: Any) -> ObjectId:
    """Convert any supported representation to an ObjectId.

    Accepts an ObjectId (returned unchanged), exactly 12 bytes, or exactly
    24 hex digits in either case.

    :raises InvalidIdentifierFormat: for any other value.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, BYTES_LIKE_TYPES):
        raw = bytes(value)
        if len(raw) == BINARY_OBJECTID_LENGTH:
            return ObjectId(raw)
    elif isinstance(value, str) and _HEX_REGEX.fullmatch(value):
        return ObjectId(value.lower())
    raise InvalidIdentifierFormat(value)


def to_binary(oid: ObjectId) -> bytes:
    """Return the 12 raw bytes of an ObjectId.
    """
    return oid.binary


def to_hex_string(oid: ObjectId) -> str:
    """Return the 24-character lowercase hex form of an ObjectId.
    """
    return str(oid)


def encode(oid: ObjectId, kind: StorageKind) -> bytes | str:
    """Serialize an ObjectId for a column of the given storage kind.
    """
    if kind is StorageKind.BINARY:
        return to_binary(oid)
    return to_hex_string(oid)
