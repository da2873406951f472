"""
Store ObjectIds in relational string or binary columns.

Application code always sees ``bson.ObjectId`` values; the column stores
either 12 raw bytes or 24 lowercase hex characters. Declare columns once per
record type:

    has_objectid_primary_key(Widget)
    has_objectid_columns(Widget, 'parent_oid')

All operations can be called either as:
- Module functions: has_objectid_columns(Widget, ...)
- Manager methods: objectid_columns_manager(Widget).register(...)
"""
__version__ = '0.1.0'

from typing import Any

from bson import ObjectId

from objectid_columns.codec import BINARY_OBJECTID_LENGTH, STRING_OBJECTID_LENGTH
from objectid_columns.codec import StorageKind, encode, is_objectid_like
from objectid_columns.codec import is_valid_objectid, parse, required_length
from objectid_columns.codec import to_binary, to_hex_string
from objectid_columns.column import ColumnInfo, ObjectIdColumn
from objectid_columns.exceptions import AccessorConflict, ColumnTooShort
from objectid_columns.exceptions import ConversionError, CorruptStoredIdentifier
from objectid_columns.exceptions import InvalidIdentifierFormat
from objectid_columns.exceptions import InvalidQueryOperand, MissingPrimaryKey
from objectid_columns.exceptions import NotAnObjectIdColumn, ObjectIdColumnsError
from objectid_columns.exceptions import RegistrationError, UnknownColumn
from objectid_columns.exceptions import UnreadableStoredValue
from objectid_columns.exceptions import UnsupportedPrimaryKeyShape
from objectid_columns.exceptions import UnsupportedStorageKind
from objectid_columns.hosts import RecordHost, SQLAlchemyHost, objectid_filter
from objectid_columns.hosts import register_host
from objectid_columns.manager import ObjectIdColumnsManager, get_manager
from objectid_columns.options import ObjectIdColumnsOptions


def objectid_columns_manager(record_type: Any, host: RecordHost | None = None,
                             **options: Any) -> ObjectIdColumnsManager:
    """Return the ObjectId columns manager for a record type.
    """
    return get_manager(record_type, host=host, **options)


def has_objectid_columns(record_type: Any, *columns: str,
                         host: RecordHost | None = None, **options: Any) -> None:
    """Declare ObjectId columns on a record type.

    With no columns, every column ending in ``_oid`` (other than the primary
    key) is registered.
    """
    get_manager(record_type, host=host, **options).register(*columns)


has_objectid_column = has_objectid_columns


def has_objectid_primary_key(record_type: Any, name: str | None = None,
                             host: RecordHost | None = None, **options: Any) -> None:
    """Declare the record type's primary key as an ObjectId column.
    """
    get_manager(record_type, host=host, **options).register_primary_key(name)


__all__ = [
    'ObjectId',
    'StorageKind',
    'BINARY_OBJECTID_LENGTH',
    'STRING_OBJECTID_LENGTH',
    'required_length',
    'parse',
    'to_binary',
    'to_hex_string',
    'encode',
    'is_valid_objectid',
    'is_objectid_like',
    'ColumnInfo',
    'ObjectIdColumn',
    'ObjectIdColumnsManager',
    'ObjectIdColumnsOptions',
    'RecordHost',
    'SQLAlchemyHost',
    'register_host',
    'objectid_filter',
    'objectid_columns_manager',
    'has_objectid_columns',
    'has_objectid_column',
    'has_objectid_primary_key',
    'ObjectIdColumnsError',
    'NotAnObjectIdColumn',
    'RegistrationError',
    'UnknownColumn',
    'UnsupportedStorageKind',
    'ColumnTooShort',
    'MissingPrimaryKey',
    'UnsupportedPrimaryKeyShape',
    'AccessorConflict',
    'ConversionError',
    'InvalidIdentifierFormat',
    'UnreadableStoredValue',
    'CorruptStoredIdentifier',
    'InvalidQueryOperand',
]
