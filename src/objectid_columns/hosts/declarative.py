"""
SQLAlchemy host for declarative mapped classes.

Schema metadata comes from the mapped ``Table`` or, when the host is bound to
an engine, from the live database through the SQLAlchemy Inspector (cached).

ObjectId columns must be mapped under an attribute key that differs from the
column name, so the installed property can own the public name:

    class Widget(Base):
        __tablename__ = 'widget'
        _id: Mapped[bytes] = mapped_column('id', LargeBinary(12), primary_key=True)
        _parent_oid: Mapped[bytes | None] = mapped_column('parent_oid', LargeBinary(12))

Raw field access goes through the mapped attribute (``_parent_oid``) while
``widget.parent_oid`` reads and writes ObjectIds.
"""
import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy import BINARY, VARBINARY, Enum, LargeBinary, String, event
from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoInspectionAvailable, NoResultFound
from sqlalchemy.orm import Mapper, QueryableAttribute

from objectid_columns.cache import cacheable_reflection
from objectid_columns.codec import is_sequence
from objectid_columns.column import ColumnInfo, normalize_column_name
from objectid_columns.exceptions import AccessorConflict, UnknownColumn
from objectid_columns.hosts.base import RecordHost, register_host

logger = logging.getLogger(__name__)

BINARY_TYPES = (LargeBinary, BINARY, VARBINARY)


def sqlalchemy_type_name(sqltype: Any) -> str:
    """Collapse a SQLAlchemy type to 'string', 'binary', or its own name.
    """
    if isinstance(sqltype, String) and not isinstance(sqltype, Enum):
        return 'string'
    if isinstance(sqltype, BINARY_TYPES):
        return 'binary'
    return type(sqltype).__name__.lower()


def _mapper(record_type: Any) -> Mapper:
    try:
        return inspect(record_type)
    except NoInspectionAvailable as exc:
        raise TypeError(f'You must supply a mapped SQLAlchemy class, not: {record_type!r}') from exc


@register_host('sqlalchemy')
class SQLAlchemyHost(RecordHost):
    """Record host backed by SQLAlchemy declarative models.

    Args:
        engine: Optional engine; when given, table existence and column
            metadata are read from the database instead of the mapped Table
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine
        self._primary_keys: dict[Any, str] = {}
        self._attribute_keys: dict[tuple[Any, str], str] = {}

    def table_exists(self, record_type: Any) -> bool:
        try:
            table = inspect(record_type).local_table
        except NoInspectionAvailable:
            return False
        if self.engine is None:
            return table is not None
        return inspect(self.engine).has_table(table.name, schema=table.schema)

    def schema_columns(self, record_type: Any) -> list[ColumnInfo]:
        table = _mapper(record_type).local_table
        if self.engine is None:
            return [ColumnInfo(col.name, sqlalchemy_type_name(col.type),
                               getattr(col.type, 'length', None))
                    for col in table.columns]
        return self._reflect_columns(table)

    @cacheable_reflection('columns')
    def _reflect_columns(self, table: Any) -> list[ColumnInfo]:
        reflected = inspect(self.engine).get_columns(table.name, schema=table.schema)
        return [ColumnInfo(col['name'], sqlalchemy_type_name(col['type']),
                           getattr(col['type'], 'length', None))
                for col in reflected]

    def _table_column(self, record_type: Any, name: str) -> Any:
        table = _mapper(record_type).local_table
        name = normalize_column_name(name)
        for column in table.columns:
            if normalize_column_name(column.name) == name:
                return column
        raise UnknownColumn(
            f'{self.record_type_name(record_type)} has no column named {name!r}; '
            f'it has columns: {[c.name for c in table.columns]!r}',
            record_type=self.record_type_name(record_type), column=name)

    def _attribute_key(self, record_type: Any, name: str) -> str:
        """Mapped attribute key that holds the raw column value."""
        cache_key = (record_type, name)
        if cache_key not in self._attribute_keys:
            column = self._table_column(record_type, name)
            prop = _mapper(record_type).get_property_by_column(column)
            self._attribute_keys[cache_key] = prop.key
        return self._attribute_keys[cache_key]

    def get_raw_field(self, record: Any, name: str) -> Any:
        return getattr(record, self._attribute_key(type(record), name))

    def set_raw_field(self, record: Any, name: str, value: Any) -> None:
        setattr(record, self._attribute_key(type(record), name), value)

    def current_primary_key_name(self, record_type: Any) -> Any:
        if record_type in self._primary_keys:
            return self._primary_keys[record_type]
        primary_key = _mapper(record_type).primary_key
        if not primary_key:
            return None
        if len(primary_key) > 1:
            return tuple(col.name for col in primary_key)
        return primary_key[0].name

    def set_primary_key_name(self, record_type: Any, name: str) -> None:
        logger.debug(f'Primary key of {self.record_type_name(record_type)} set to {name!r}')
        self._primary_keys[record_type] = name

    def check_accessor(self, record_type: Any, name: str) -> None:
        if isinstance(getattr(record_type, name, None), QueryableAttribute):
            raise AccessorConflict(
                f'{self.record_type_name(record_type)} already maps an attribute '
                f'named {name!r}; map the ObjectId column under another key '
                f"(e.g. _{name} = mapped_column('{name}', ...)) so the "
                f'ObjectId accessor can take its name',
                record_type=self.record_type_name(record_type), column=name)

    def install_accessor(self, record_type: Any, name: str,
                         getter: Callable[[Any], Any]) -> None:
        self.check_accessor(record_type, name)
        setattr(record_type, name, property(getter))

    def install_mutator(self, record_type: Any, name: str,
                        setter: Callable[[Any, Any], None]) -> None:
        current = record_type.__dict__.get(name)
        if isinstance(current, property):
            setattr(record_type, name, current.setter(setter))
            return
        self.check_accessor(record_type, name)
        setattr(record_type, name, property(fset=setter))

    def install_class_method(self, record_type: Any, name: str,
                             fn: Callable[..., Any]) -> None:
        setattr(record_type, name, classmethod(fn))

    def install_before_create_hook(self, record_type: Any,
                                   fn: Callable[[Any], None]) -> None:
        def before_insert(mapper, connection, target):
            fn(target)

        event.listen(record_type, 'before_insert', before_insert)

    def lookup_method(self, record_type: Any, name: str) -> Callable[..., Any]:
        if name == 'find':
            return self.find
        if name == 'find_by_id':
            return self.find_by_id
        return super().lookup_method(record_type, name)

    def find_by_id(self, record_type: Any, ident: Any, *, session: Any) -> Any:
        """Look up rows by raw primary-key value(s).

        A sequence of values returns the list of matching rows; a single value
        returns the row or None.
        """
        name = self.current_primary_key_name(record_type)
        column = self._table_column(record_type, name)
        if is_sequence(ident):
            return list(session.scalars(select(record_type).where(column.in_(list(ident)))))

        primary_key = _mapper(record_type).primary_key
        if len(primary_key) == 1 and primary_key[0].name == column.name:
            return session.get(record_type, ident)
        return session.scalars(select(record_type).where(column == ident)).one_or_none()

    def find(self, record_type: Any, ident: Any, *, session: Any) -> Any:
        """Like :meth:`find_by_id`, but a missing single row raises NoResultFound.
        """
        result = self.find_by_id(record_type, ident, session=session)
        if result is None:
            raise NoResultFound(
                f"Couldn't find {self.record_type_name(record_type)} with primary key {ident!r}")
        return result

    def criteria(self, record_type: Any, constraints: dict[str, Any]) -> list[Any]:
        """Build WHERE criteria from already-translated constraints.

        None becomes IS NULL, a sequence becomes IN (...), anything else =.
        """
        clauses = []
        for name, value in constraints.items():
            column = self._table_column(record_type, name)
            if value is None:
                clauses.append(column.is_(None))
            elif is_sequence(value):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses


def objectid_filter(record_type: Any, **constraints: Any) -> list[Any]:
    """Build WHERE criteria for a mapped class, translating ObjectId operands.

    Usage:
        session.scalars(select(Widget).where(*objectid_filter(Widget, parent_oid=oid)))
    """
    from objectid_columns.manager import get_manager
    manager = get_manager(record_type)
    return manager.host.criteria(record_type, manager.translate_query(constraints))
