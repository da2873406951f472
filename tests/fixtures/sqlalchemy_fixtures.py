"""
Test fixtures for SQLAlchemy integration tests.

Each fixture builds its own declarative base so models (and the accessors
installed on them) never leak between tests.
"""
import pytest
from sqlalchemy import Integer, LargeBinary, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine"""
    engine = create_engine('sqlite://')
    yield engine
    engine.dispose()


@pytest.fixture
def widget_models(sqlite_engine):
    """Widget (binary ObjectId pk) and Gadget (string ObjectId pk named 'oid')"""

    class Base(DeclarativeBase):
        pass

    class Widget(Base):
        __tablename__ = 'widget'

        _id: Mapped[bytes] = mapped_column('id', LargeBinary(12), primary_key=True)
        _parent_oid: Mapped[bytes | None] = mapped_column('parent_oid', LargeBinary(12))
        _owner_oid: Mapped[str | None] = mapped_column('owner_oid', String(24))
        name: Mapped[str | None] = mapped_column(String(255))
        count: Mapped[int | None] = mapped_column(Integer)

    class Gadget(Base):
        __tablename__ = 'gadget'

        _oid: Mapped[str] = mapped_column('oid', String(24), primary_key=True)
        label: Mapped[str | None] = mapped_column(String(50))

    Base.metadata.create_all(sqlite_engine)
    return Widget, Gadget


@pytest.fixture
def session(sqlite_engine):
    with Session(sqlite_engine) as session:
        yield session
