"""
End-to-end tests of ObjectId columns on SQLAlchemy models backed by SQLite.
"""
import pytest
from bson import ObjectId
from sqlalchemy import BINARY, VARBINARY, Enum, Integer, LargeBinary, String
from sqlalchemy import Text, Unicode, select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from objectid_columns import AccessorConflict, ColumnInfo, ColumnTooShort
from objectid_columns import InvalidIdentifierFormat, InvalidQueryOperand
from objectid_columns import SQLAlchemyHost, has_objectid_columns
from objectid_columns import has_objectid_primary_key, objectid_columns_manager
from objectid_columns import objectid_filter
from objectid_columns.cache import Cache
from objectid_columns.hosts.declarative import sqlalchemy_type_name


@pytest.mark.parametrize(('sqltype', 'expected'), [
    (String(24), 'string'),
    (Text(), 'string'),
    (Unicode(30), 'string'),
    (Enum('a', 'b', name='ab'), 'enum'),
    (LargeBinary(12), 'binary'),
    (BINARY(12), 'binary'),
    (VARBINARY(16), 'binary'),
    (Integer(), 'integer'),
])
def test_sqlalchemy_type_name(sqltype, expected):
    assert sqlalchemy_type_name(sqltype) == expected


class TestWidget:
    """Binary ObjectId primary key plus binary and string ObjectId columns"""

    @pytest.fixture
    def Widget(self, widget_models):
        Widget, _ = widget_models
        has_objectid_primary_key(Widget)
        has_objectid_columns(Widget)
        return Widget

    def test_registered_columns(self, Widget):
        manager = objectid_columns_manager(Widget)
        assert manager.primary_key == 'id'
        assert manager.columns == ['id', 'parent_oid', 'owner_oid']
        assert isinstance(manager.host, SQLAlchemyHost)

    def test_write_then_read(self, Widget):
        widget = Widget(name='first', parent_oid='4f1d2c3b4a5968778695a4b3')
        assert widget._parent_oid == bytes.fromhex('4f1d2c3b4a5968778695a4b3')
        assert str(widget.parent_oid) == '4f1d2c3b4a5968778695a4b3'

    def test_persist_and_reload(self, Widget, session, oid, other_oid):
        widget = Widget(name='first', parent_oid=oid, owner_oid=other_oid.binary)
        session.add(widget)
        session.commit()

        assert isinstance(widget.id, ObjectId)
        widget_id = widget.id
        session.expunge_all()

        loaded = Widget.find(widget_id, session=session)
        assert loaded.id == widget_id
        assert loaded.parent_oid == oid
        assert loaded.owner_oid == other_oid
        assert loaded._owner_oid == str(other_oid)

    def test_explicit_primary_key_kept(self, Widget, session, oid):
        session.add(Widget(id=oid, name='explicit'))
        session.commit()
        assert Widget.find(str(oid), session=session).name == 'explicit'

    def test_lookup_forms(self, Widget, session, oid, other_oid):
        session.add_all([Widget(id=oid, name='a'), Widget(id=other_oid, name='b')])
        session.commit()

        assert Widget.find(oid.binary, session=session).name == 'a'
        assert Widget.find(str(oid).upper(), session=session).name == 'a'
        assert Widget.find_by_id(other_oid, session=session).name == 'b'

        found = Widget.find([str(oid), other_oid], session=session)
        assert sorted(w.name for w in found) == ['a', 'b']

    def test_lookup_missing(self, Widget, session):
        assert Widget.find_by_id(ObjectId(), session=session) is None
        with pytest.raises(NoResultFound):
            Widget.find(ObjectId(), session=session)

    def test_lookup_invalid(self, Widget, session):
        with pytest.raises(InvalidQueryOperand):
            Widget.find('bogus', session=session)

    def test_invalid_write(self, Widget):
        with pytest.raises(InvalidIdentifierFormat):
            Widget(parent_oid='bogus')

    def test_objectid_filter(self, Widget, session, oid, other_oid):
        session.add_all([
            Widget(name='a', parent_oid=oid),
            Widget(name='b', parent_oid=other_oid, owner_oid=oid),
            Widget(name='c'),
        ])
        session.commit()

        def names(**constraints):
            stmt = select(Widget).where(*objectid_filter(Widget, **constraints))
            return sorted(w.name for w in session.scalars(stmt))

        assert names(parent_oid=str(oid)) == ['a']
        assert names(parent_oid=[oid.binary, str(other_oid).upper()]) == ['a', 'b']
        assert names(parent_oid=None) == ['c']
        assert names(owner_oid=oid, name='b') == ['b']
        assert names(name='c') == ['c']
        assert names(Parent_OID=str(oid)) == ['a']
        assert names(OWNER_OID=[str(oid)]) == ['b']

    def test_objectid_filter_invalid(self, Widget):
        with pytest.raises(InvalidQueryOperand):
            objectid_filter(Widget, parent_oid=42)


class TestGadget:
    """String ObjectId primary key not named 'id'"""

    @pytest.fixture
    def Gadget(self, widget_models):
        _, Gadget = widget_models
        has_objectid_primary_key(Gadget)
        return Gadget

    def test_alias_and_assignment(self, Gadget, session):
        gadget = Gadget(label='x')
        session.add(gadget)
        session.commit()

        assert isinstance(gadget.oid, ObjectId)
        assert gadget.id == gadget.oid
        assert gadget._oid == str(gadget.oid)

    def test_id_alias_writes_key(self, Gadget, oid):
        gadget = Gadget(id=oid.binary)
        assert gadget._oid == str(oid)

    def test_find_by_hex(self, Gadget, session, oid):
        session.add(Gadget(oid=oid, label='y'))
        session.commit()
        session.expunge_all()
        assert Gadget.find(str(oid).upper(), session=session).label == 'y'


def test_accessor_conflict():
    class Base(DeclarativeBase):
        pass

    class Thing(Base):
        __tablename__ = 'thing'

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        parent_oid: Mapped[bytes | None] = mapped_column(LargeBinary(12))

    with pytest.raises(AccessorConflict):
        has_objectid_columns(Thing, 'parent_oid')
    assert objectid_columns_manager(Thing).columns == []


def test_column_too_short():
    class Base(DeclarativeBase):
        pass

    class Thing(Base):
        __tablename__ = 'thing'

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        _ref_oid: Mapped[str | None] = mapped_column('ref_oid', String(20))

    with pytest.raises(ColumnTooShort):
        has_objectid_columns(Thing, 'ref_oid')


def test_unmapped_class_is_noop():
    class Plain:
        pass

    has_objectid_columns(Plain, 'parent_oid')
    assert objectid_columns_manager(Plain).columns == []


class TestReflection:
    """Host bound to an engine reads the live schema"""

    def test_schema_columns_reflected_and_cached(self, widget_models, sqlite_engine):
        Widget, _ = widget_models
        host = SQLAlchemyHost(engine=sqlite_engine)

        columns = host.schema_columns(Widget)
        assert ColumnInfo.get_column_by_name(columns, 'owner_oid') == ColumnInfo('owner_oid', 'string', 24)
        assert ColumnInfo.get_column_by_name(columns, 'parent_oid').type_name == 'binary'
        assert ColumnInfo.get_column_by_name(columns, 'count').type_name == 'integer'

        assert host.schema_columns(Widget) is columns
        Cache.get_instance().clear_for_table('widget')
        assert host.schema_columns(Widget) is not columns

    def test_register_against_live_schema(self, widget_models, sqlite_engine, session, oid):
        Widget, _ = widget_models
        host = SQLAlchemyHost(engine=sqlite_engine)
        has_objectid_columns(Widget, 'parent_oid', host=host)

        widget = Widget(name='r', parent_oid=str(oid))
        widget._id = ObjectId().binary
        session.add(widget)
        session.commit()
        session.expunge_all()

        loaded = session.scalars(select(Widget).where(*objectid_filter(Widget, parent_oid=oid))).one()
        assert loaded.parent_oid == oid

    def test_missing_table_is_noop(self, sqlite_engine):
        class Base(DeclarativeBase):
            pass

        class Ghost(Base):
            __tablename__ = 'ghost'

            _id: Mapped[bytes] = mapped_column('id', LargeBinary(12), primary_key=True)
            _ref_oid: Mapped[bytes | None] = mapped_column('ref_oid', LargeBinary(12))

        host = SQLAlchemyHost(engine=sqlite_engine)
        assert not host.table_exists(Ghost)
        has_objectid_primary_key(Ghost, host=host)
        has_objectid_columns(Ghost, host=host)
        assert objectid_columns_manager(Ghost).columns == []
        assert not isinstance(Ghost.__dict__.get('ref_oid'), property)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
