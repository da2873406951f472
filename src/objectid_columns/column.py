"""
Column metadata and ObjectId column descriptors.
"""
import logging
from dataclasses import dataclass
from typing import Any, Self

from bson import ObjectId

from objectid_columns.codec import BYTES_LIKE_TYPES, StorageKind, encode
from objectid_columns.exceptions import ColumnTooShort, UnsupportedStorageKind

logger = logging.getLogger(__name__)


def normalize_column_name(name: Any) -> str:
    """Canonical registry key for a column name.
    """
    return str(name).strip().lower()


@dataclass(frozen=True)
class ColumnInfo:
    """Host-neutral view of one schema column.

    Args:
        name: Column name as reported by the schema
        type_name: 'string', 'binary', or any other type name
        limit: Declared length limit, or None when unbounded
    """
    name: str
    type_name: str
    limit: int | None = None

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        """Get column names from a list of ColumnInfo objects.
        """
        return [col.name for col in columns]

    @staticmethod
    def get_column_by_name(columns: list[Self], name: str) -> Self | None:
        """Find a column by (normalized) name in a list of ColumnInfo objects.
        """
        name = normalize_column_name(name)
        for col in columns:
            if normalize_column_name(col.name) == name:
                return col
        return None


@dataclass(frozen=True)
class ObjectIdColumn:
    """A column validated to hold ObjectIds.

    Invariant: ``limit is None or limit >= kind.required_length``.
    """
    name: str
    kind: StorageKind
    limit: int | None = None

    @classmethod
    def from_column_info(cls, info: ColumnInfo, record_type: str) -> Self:
        """Validate schema metadata and build a descriptor.

        :raises UnsupportedStorageKind: column is not string or binary.
        :raises ColumnTooShort: declared limit is below the required length.
        """
        name = normalize_column_name(info.name)
        kind = StorageKind.from_type_name(info.type_name)
        if kind is None:
            raise UnsupportedStorageKind(
                f'{record_type} has a column named {name!r}, but it is of type '
                f'{info.type_name!r}; we can only make ObjectId columns out of '
                f"'string' or 'binary' columns",
                record_type=record_type, column=name, value=info.type_name)

        if info.limit is not None and info.limit < kind.required_length:
            raise ColumnTooShort(
                f'{record_type} has a column named {name!r} of type '
                f'{kind.value!r}, but it is of length {info.limit}, which is too '
                f'short to contain an ObjectId of this format; it must be of '
                f'length at least {kind.required_length}',
                record_type=record_type, column=name, value=info.limit)

        return cls(name=name, kind=kind, limit=info.limit)

    @property
    def required_length(self) -> int:
        return self.kind.required_length

    def encode(self, oid: ObjectId) -> bytes | str:
        """Serialize an ObjectId in this column's storage format.
        """
        return encode(oid, self.kind)

    def truncate(self, raw: str | bytes) -> str | bytes:
        """Trim trailing padding some engines add to fixed-width columns.
        """
        if isinstance(raw, BYTES_LIKE_TYPES):
            raw = bytes(raw)
        return raw[:self.required_length]
