"""
Per-record-type registry of ObjectId columns.

The ObjectIdColumnsManager does the real work: it validates which columns of a
record type hold ObjectIds, turns stored values into ObjectIds on read,
re-encodes supplied values on write, translates query operands, and wires the
primary key (aliases, before-create assignment, lookups).

It is a separate object rather than a mixin so nothing leaks into the record
type's namespace beyond the accessors it installs through the host. There is
exactly one manager per record type; use :func:`get_manager`.

Registration happens once during record-type setup. Afterwards the registry is
only read, so no locking is done on read/write/translate.
"""
import logging
import threading
from collections.abc import Mapping
from typing import Any

from bson import ObjectId

from objectid_columns.codec import BYTES_LIKE_TYPES, StorageKind
from objectid_columns.codec import is_objectid_like, is_sequence, parse
from objectid_columns.column import ColumnInfo, ObjectIdColumn
from objectid_columns.column import normalize_column_name
from objectid_columns.exceptions import CorruptStoredIdentifier
from objectid_columns.exceptions import InvalidIdentifierFormat
from objectid_columns.exceptions import InvalidQueryOperand, MissingPrimaryKey
from objectid_columns.exceptions import NotAnObjectIdColumn, RegistrationError
from objectid_columns.exceptions import UnknownColumn, UnreadableStoredValue
from objectid_columns.exceptions import UnsupportedPrimaryKeyShape
from objectid_columns.hosts import RecordHost, get_host
from objectid_columns.options import ObjectIdColumnsOptions, load_options

logger = logging.getLogger(__name__)

_managers: dict[Any, 'ObjectIdColumnsManager'] = {}
_lock = threading.RLock()


def get_manager(record_type: Any, host: RecordHost | None = None,
                options: ObjectIdColumnsOptions | dict | None = None,
                **kwargs: Any) -> 'ObjectIdColumnsManager':
    """Return the manager for a record type, creating it on first use.

    host and options only take effect when the manager is created.
    """
    with _lock:
        manager = _managers.get(record_type)
        if manager is None:
            manager = ObjectIdColumnsManager(
                record_type, host=host, options=load_options(options, **kwargs))
            _managers[record_type] = manager
            logger.debug(f'Created ObjectId columns manager for {manager.record_type_name}')
        return manager


class ObjectIdColumnsManager:
    """ObjectId column registry for a single record type.
    """

    def __init__(self, record_type: Any, host: RecordHost | None = None,
                 options: ObjectIdColumnsOptions | dict | None = None) -> None:
        self.options = load_options(options)
        self.host = host if host is not None else get_host(self.options.host)
        self.record_type = record_type
        self.record_type_name = self.host.record_type_name(record_type)
        self._columns: dict[str, ObjectIdColumn] = {}
        self._primary_key: str | None = None

    def __repr__(self) -> str:
        return (f'ObjectIdColumnsManager(record_type={self.record_type_name}, '
                f'columns={self.columns!r}, primary_key={self._primary_key!r})')

    @property
    def columns(self) -> list[str]:
        """Names of registered ObjectId columns, in registration order."""
        return list(self._columns)

    @property
    def primary_key(self) -> str | None:
        """Effective primary-key column, once registered."""
        return self._primary_key

    def is_objectid_column(self, name: Any) -> bool:
        return normalize_column_name(name) in self._columns

    def column(self, name: Any) -> ObjectIdColumn:
        """Descriptor of a registered column, matched case-insensitively.

        :raises NotAnObjectIdColumn: name was never registered.
        """
        descriptor = self._columns.get(normalize_column_name(name))
        if descriptor is None:
            raise NotAnObjectIdColumn(
                f'{name!r} is not an ObjectId column of {self.record_type_name}; '
                f'we have: {self.columns!r}',
                record_type=self.record_type_name, column=str(name))
        return descriptor

    # Registration

    def register(self, *columns: Any) -> None:
        """Declare ObjectId columns, auto-detecting them when none are given.

        Auto-detection picks every column ending in the configured suffix
        (``_oid`` by default), except the primary key. Every column is
        validated before any accessor is installed.

        :raises UnknownColumn: no such column in the schema.
        :raises UnsupportedStorageKind: column is not string or binary.
        :raises ColumnTooShort: declared limit cannot hold an ObjectId.
        :raises AccessorConflict: host cannot install an accessor.
        """
        if not self.host.table_exists(self.record_type):
            logger.debug(f'{self.record_type_name} has no table; skipping ObjectId columns')
            return

        if len(columns) == 1 and is_sequence(columns[0]):
            columns = tuple(columns[0])

        if not columns:
            columns = self._autodetect_columns(self.host.schema_columns(self.record_type))
            logger.debug(f'Auto-detected ObjectId columns on {self.record_type_name}: {columns!r}')

        pending = self._pending_columns(columns)
        for descriptor in pending:
            self.host.check_accessor(self.record_type, descriptor.name)
        self._add_columns(pending)

    has_objectid_columns = register
    has_objectid_column = register

    def _pending_columns(self, columns: Any) -> list[ObjectIdColumn]:
        """Validated descriptors for the columns not registered yet."""
        schema = self.host.schema_columns(self.record_type)
        pending: dict[str, ObjectIdColumn] = {}
        for column_name in [normalize_column_name(c) for c in columns]:
            info = ColumnInfo.get_column_by_name(schema, column_name)
            if info is None:
                raise UnknownColumn(
                    f"{self.record_type_name} doesn't seem to have a column named "
                    f'{column_name!r} that we could make an ObjectId column; did you '
                    f'misspell it? It has columns: {ColumnInfo.get_names(schema)!r}',
                    record_type=self.record_type_name, column=column_name)

            descriptor = ObjectIdColumn.from_column_info(info, self.record_type_name)
            existing = self._columns.get(descriptor.name)
            if existing == descriptor:
                logger.debug(f'{self.record_type_name}.{descriptor.name} already registered')
                continue
            if existing is not None:
                raise RegistrationError(
                    f'{self.record_type_name}.{descriptor.name} is already an ObjectId '
                    f'column as {existing!r}; it cannot be redefined as {descriptor!r}',
                    record_type=self.record_type_name, column=descriptor.name)
            pending[descriptor.name] = descriptor
        return list(pending.values())

    def _add_columns(self, pending: list[ObjectIdColumn]) -> None:
        for descriptor in pending:
            self._install_accessors(descriptor.name, descriptor.name)
            self._columns[descriptor.name] = descriptor
            logger.debug(f'Registered ObjectId column {self.record_type_name}.{descriptor.name} '
                         f'({descriptor.kind.value})')

    def register_primary_key(self, name: str | None = None) -> None:
        """Declare the primary key as an ObjectId column.

        Uses the host's configured primary key; a different ``name`` renames
        it. Also aliases the conventional accessor (``id``) when the key is
        named otherwise, assigns an ObjectId before first insert, and makes
        the lookup class methods accept any ObjectId form. Nothing is
        changed on the record type unless every step can succeed.

        :raises MissingPrimaryKey: no primary key configured and none given.
        :raises UnsupportedPrimaryKeyShape: key is composite or not a name.
        :raises AccessorConflict: host cannot install the key or its alias.
        """
        if name is not None and not isinstance(name, str):
            raise UnsupportedPrimaryKeyShape(
                f"You can't have an ObjectId primary key that's not a string: {name!r}",
                record_type=self.record_type_name, value=name)

        if not self.host.table_exists(self.record_type):
            logger.debug(f'{self.record_type_name} has no table; skipping ObjectId primary key')
            return

        requested = normalize_column_name(name) if name is not None else None
        primary_key = self.host.current_primary_key_name(self.record_type)

        if primary_key is None and requested is None:
            raise MissingPrimaryKey(
                f"{self.record_type_name} has no primary key set, and you haven't "
                f'supplied one; either configure one on the record type, or pass '
                f'its name and we will set it for you',
                record_type=self.record_type_name)

        if isinstance(primary_key, str):
            primary_key = normalize_column_name(primary_key)
        rename = primary_key is None or (requested is not None and primary_key != requested)
        if rename:
            primary_key = requested

        if not isinstance(primary_key, str):
            raise UnsupportedPrimaryKeyShape(
                f"You can't have an ObjectId primary key that's not a single "
                f'column name: {primary_key!r}',
                record_type=self.record_type_name, value=primary_key)

        if self._primary_key == primary_key:
            logger.debug(f'{self.record_type_name} primary key {primary_key!r} already registered')
            return

        default_name = self.options.default_primary_key
        alias = primary_key != normalize_column_name(default_name)
        pending = self._pending_columns([primary_key])
        for descriptor in pending:
            self.host.check_accessor(self.record_type, descriptor.name)
        if alias:
            self.host.check_accessor(self.record_type, default_name)

        if rename:
            self.host.set_primary_key_name(self.record_type, primary_key)
        self._add_columns(pending)
        self._primary_key = primary_key

        if alias:
            self._install_accessors(default_name, primary_key)

        if self.options.assign_primary_key:
            self.host.install_before_create_hook(self.record_type, self.assign_primary_key)

        for method_name in self.options.lookup_methods:
            self._install_lookup(method_name)

        logger.debug(f'Registered ObjectId primary key {self.record_type_name}.{primary_key}')

    has_objectid_primary_key = register_primary_key

    def _autodetect_columns(self, schema: list[ColumnInfo]) -> list[str]:
        suffix = self.options.suffix
        detected = [col.name for col in schema
                    if normalize_column_name(col.name).endswith(suffix)]

        primary_key = self.host.current_primary_key_name(self.record_type)
        if isinstance(primary_key, str):
            excluded = {normalize_column_name(primary_key)}
        elif primary_key:
            excluded = {normalize_column_name(pk) for pk in primary_key}
        else:
            excluded = set()
        return [c for c in detected if normalize_column_name(c) not in excluded]

    def _install_accessors(self, accessor_name: str, column_name: str) -> None:
        manager = self

        def getter(record):
            return manager.read(record, column_name)

        def setter(record, value):
            manager.write(record, column_name, value)

        self.host.install_accessor(self.record_type, accessor_name, getter)
        self.host.install_mutator(self.record_type, accessor_name, setter)

    def _install_lookup(self, method_name: str) -> None:
        default = self.host.lookup_method(self.record_type, method_name)
        manager = self

        def lookup(cls, *args, **kwargs):
            if args and (is_objectid_like(args[0]) or is_sequence(args[0])):
                args = (manager.translate(manager.primary_key, args[0]), *args[1:])
            return default(cls, *args, **kwargs)

        lookup.__name__ = method_name
        self.host.install_class_method(self.record_type, method_name, lookup)

    # Values

    def read(self, record: Any, column_name: str) -> ObjectId | None:
        """Read a registered column as an ObjectId (or None).

        :raises UnreadableStoredValue: stored value is not text or bytes.
        :raises CorruptStoredIdentifier: stored value does not decode.
        """
        column = self.column(column_name)
        value = self.host.get_raw_field(record, column.name)
        if value is None:
            return None

        if not isinstance(value, (str, *BYTES_LIKE_TYPES)):
            raise UnreadableStoredValue(
                f'When trying to read the ObjectId column {column.name!r} on '
                f'{self.record_type_name}, we got the following data from the '
                f'database; we expected text or bytes: {value!r}',
                record_type=self.record_type_name, column=column.name, value=value)

        # empty values are left over from older schemas
        if len(value) == 0:
            return None

        raw = column.truncate(value)
        try:
            if column.kind is StorageKind.STRING and isinstance(raw, bytes):
                raw = raw.decode('ascii')
            return parse(raw)
        except (InvalidIdentifierFormat, UnicodeDecodeError) as exc:
            raise CorruptStoredIdentifier(
                f'The ObjectId column {column.name!r} on {self.record_type_name} '
                f'holds a value that is not a valid {column.kind.value} ObjectId: {value!r}',
                record_type=self.record_type_name, column=column.name, value=value) from exc

    def write(self, record: Any, column_name: str, value: Any) -> None:
        """Store any ObjectId form in a registered column; falsy stores None.

        :raises InvalidIdentifierFormat: value is not an ObjectId in any format.
        """
        column = self.column(column_name)
        if not value:
            self.host.set_raw_field(record, column.name, None)
            return
        self.host.set_raw_field(record, column.name,
                                self.to_valid_value_for_column(column.name, value))

    def to_valid_value_for_column(self, column_name: str, value: Any) -> bytes | str:
        """Parse value and encode it for the column's storage kind.
        """
        column = self.column(column_name)
        try:
            oid = parse(value)
        except InvalidIdentifierFormat as exc:
            raise InvalidIdentifierFormat(
                value, column=column.name, record_type=self.record_type_name) from exc
        return column.encode(oid)

    def translate(self, column_name: Any, value: Any) -> Any:
        """Translate a query operand for a column.

        Non-ObjectId columns and falsy operands pass through untouched;
        sequences are translated element-wise, keeping order.

        :raises InvalidQueryOperand: operand is not usable for an ObjectId column.
        """
        column = self._columns.get(normalize_column_name(column_name))
        if column is None or not value:
            return value

        if is_objectid_like(value):
            try:
                return column.encode(parse(value))
            except InvalidIdentifierFormat as exc:
                raise self._invalid_operand(column, value) from exc

        if is_sequence(value):
            translated = [self.translate(column.name, v) for v in value]
            return tuple(translated) if isinstance(value, tuple) else translated

        raise self._invalid_operand(column, value)

    def translate_query(self, constraints: Mapping[str, Any]) -> dict[str, Any]:
        """Translate every operand of a column -> operand mapping.
        """
        return {key: self.translate(key, value) for key, value in constraints.items()}

    def _invalid_operand(self, column: ObjectIdColumn, value: Any) -> InvalidQueryOperand:
        return InvalidQueryOperand(
            value, column=column.name, record_type=self.record_type_name,
            message=(f"You're trying to constrain {self.record_type_name} on column "
                     f'{column.name!r}, which is an ObjectId column, but the value you '
                     f'passed, {value!r}, is not a valid format for an ObjectId'))

    def assign_primary_key(self, record: Any) -> None:
        """Give a record a new ObjectId primary key unless it already has one.
        """
        if self._primary_key is None:
            return
        if self.read(record, self._primary_key) is None:
            self.write(record, self._primary_key, ObjectId())
