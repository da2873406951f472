"""
Host factory for ORM integration.
"""
from functools import lru_cache

from objectid_columns.hosts.base import _HOST_REGISTRY
from objectid_columns.hosts.base import RecordHost as RecordHost
from objectid_columns.hosts.base import register_host as register_host
from objectid_columns.hosts.declarative import SQLAlchemyHost as SQLAlchemyHost
from objectid_columns.hosts.declarative import objectid_filter as objectid_filter


def _validate_host(name: str) -> None:
    """Raise ValueError if host is not registered."""
    if name not in _HOST_REGISTRY:
        available = list(_HOST_REGISTRY.keys())
        raise ValueError(f'Unsupported host: {name}. Available: {available}')


@lru_cache(maxsize=8)
def get_host(name: str) -> RecordHost:
    """Get cached default-constructed host instance for a name."""
    _validate_host(name)
    return _HOST_REGISTRY[name]()


def get_available_hosts() -> list[str]:
    """Return list of registered host names."""
    return list(_HOST_REGISTRY.keys())


def is_supported_host(name: str) -> bool:
    """Check if a host is supported."""
    return name in _HOST_REGISTRY


def get_host_class(name: str) -> type[RecordHost]:
    """Get the host class for a name without instantiating."""
    _validate_host(name)
    return _HOST_REGISTRY[name]
