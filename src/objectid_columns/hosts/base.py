"""
Base host interface for ORM integration.

A host adapts one ORM (or any record layer) to the small set of capabilities
the column registry needs: schema introspection, raw field access, primary-key
configuration, and a way to attach accessors, class methods and a
before-create hook to a record type. The registry decides *which* names to
install and *what* they wrap; the host decides *how* they are bound.
"""
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from objectid_columns.column import ColumnInfo

# Registry of host name -> host class
_HOST_REGISTRY: dict[str, type['RecordHost']] = {}


def register_host(name: str):
    """Decorator to register a host class under a name.

    Usage:
        @register_host('sqlalchemy')
        class SQLAlchemyHost(RecordHost):
            ...
    """
    def decorator(cls: type['RecordHost']) -> type['RecordHost']:
        _HOST_REGISTRY[name] = cls
        return cls
    return decorator


class RecordHost(ABC):
    """Capabilities the column registry consumes from a record layer.
    """

    @classmethod
    def validate_options(cls, options: Any) -> None:
        """Validate options for this host.

        Raises
            ValueError: If a name that becomes a record-type attribute is not
                a valid identifier
        """
        names = [options.default_primary_key, *options.lookup_methods]
        for name in names:
            if not isinstance(name, str) or not name.isidentifier():
                raise ValueError(f'{name!r} cannot be installed as an attribute name')

    def record_type_name(self, record_type: Any) -> str:
        """Name used in error messages and logs."""
        return getattr(record_type, '__name__', repr(record_type))

    @abstractmethod
    def table_exists(self, record_type: Any) -> bool:
        """Whether the record type has a backing table."""

    @abstractmethod
    def schema_columns(self, record_type: Any) -> list[ColumnInfo]:
        """All schema columns of the record type's table."""

    @abstractmethod
    def get_raw_field(self, record: Any, name: str) -> Any:
        """Stored value of a column, without any coercion."""

    @abstractmethod
    def set_raw_field(self, record: Any, name: str, value: Any) -> None:
        """Store a value in a column, without any coercion."""

    @abstractmethod
    def current_primary_key_name(self, record_type: Any) -> Any:
        """Configured primary key: a name, a composite (tuple), or None."""

    @abstractmethod
    def set_primary_key_name(self, record_type: Any, name: str) -> None:
        """Configure (or rename) the record type's primary key."""

    def check_accessor(self, record_type: Any, name: str) -> None:
        """Raise AccessorConflict if an accessor cannot be installed as name.

        Called for every name before any is installed, so a failed
        registration leaves the record type untouched.
        """

    @abstractmethod
    def install_accessor(self, record_type: Any, name: str,
                         getter: Callable[[Any], Any]) -> None:
        """Expose ``record.<name>`` through getter(record)."""

    @abstractmethod
    def install_mutator(self, record_type: Any, name: str,
                        setter: Callable[[Any, Any], None]) -> None:
        """Route ``record.<name> = value`` through setter(record, value)."""

    @abstractmethod
    def install_class_method(self, record_type: Any, name: str,
                             fn: Callable[..., Any]) -> None:
        """Expose ``record_type.<name>(...)`` as fn(record_type, ...)."""

    @abstractmethod
    def install_before_create_hook(self, record_type: Any,
                                   fn: Callable[[Any], None]) -> None:
        """Call fn(record) before a new record is first persisted."""

    def lookup_method(self, record_type: Any, name: str) -> Callable[..., Any]:
        """Default lookup behavior a wrapped lookup delegates to.

        Returns a callable taking (record_type, *args, **kwargs). The default
        unwraps whatever the record type already exposes under that name.
        """
        method = getattr(record_type, name)
        return getattr(method, '__func__', method)
