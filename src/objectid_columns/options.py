from dataclasses import dataclass, fields
from typing import Any

from libb import ConfigOptions

from objectid_columns.hosts import get_available_hosts, get_host_class
from objectid_columns.hosts import is_supported_host

__all__ = [
    'ObjectIdColumnsOptions',
    'load_options',
]


@dataclass
class ObjectIdColumnsOptions(ConfigOptions):
    """Options

    supported host names: `sqlalchemy` (plus any registered with `register_host`)

    - suffix: Column-name suffix used to auto-detect ObjectId columns (default: '_oid')
    - default_primary_key: Conventional primary-key accessor name (default: 'id')
    - lookup_methods: Class methods that pre-translate ObjectId arguments
    - assign_primary_key: Assign a new ObjectId before first insert (default: True)
    """
    host: str = 'sqlalchemy'
    suffix: str = '_oid'
    default_primary_key: str = 'id'
    lookup_methods: tuple[str, ...] = ('find', 'find_by_id')
    assign_primary_key: bool = True

    def __post_init__(self):
        if not is_supported_host(self.host):
            available = get_available_hosts()
            raise ValueError(f'host must be one of: {available}')
        if not self.suffix or not self.suffix.strip():
            raise ValueError('suffix must be a non-empty string')
        self.suffix = self.suffix.strip().lower()
        self.lookup_methods = tuple(self.lookup_methods)
        host_cls = get_host_class(self.host)
        host_cls.validate_options(self)


def load_options(options: ObjectIdColumnsOptions | dict | None = None,
                 **kwargs: Any) -> ObjectIdColumnsOptions:
    """Build options from an instance, a dict, or keyword arguments.

    Keyword arguments override values in a supplied dict or instance.
    """
    if isinstance(options, ObjectIdColumnsOptions) and not kwargs:
        return options
    if isinstance(options, ObjectIdColumnsOptions):
        options = {f.name: getattr(options, f.name) for f in fields(options)}
    merged = dict(options or {})
    merged.update(kwargs)
    return ObjectIdColumnsOptions(**merged)
