import pytest

from ministi import Model, Number, Text, col
from ministi.states import ObjectState


class Employee(Model):
    id = Number(pk=True)
    name = Text()
    kind = Text()

    class Meta:
        table_name = "employees"
        discriminator = "kind"


class Staff(Employee):
    desk = Text()


class Manager(Employee):
    reports = Number(default=0)


@pytest.fixture
def session(session_for):
    return session_for(Employee)


def test_default_key_map_stores_class_name():
    registry = Employee._mapper.sti
    assert registry.value_for(Staff) == "Staff"
    assert registry.value_for(Manager) == "Manager"
    assert registry.value_for(Employee) == "Employee"


def test_default_model_map_resolves_class_name_back():
    registry = Employee._mapper.sti
    for model in (Employee, Staff, Manager):
        assert registry.resolve(registry.model_for(registry.value_for(model))) is model


def test_row_with_subclass_key_loads_as_subclass(session, insert_row):
    insert_row("employees", name="Sam", kind="Staff", desk="B12")

    loaded = session.query(Employee).all()

    assert len(loaded) == 1
    assert type(loaded[0]) is Staff
    assert loaded[0].desk == "B12"


def test_unknown_key_loads_as_root(session, insert_row):
    insert_row("employees", name="Ursula", kind="unknown")

    loaded = session.query(Employee).first()

    assert type(loaded) is Employee
    assert loaded.kind == "unknown"


@pytest.mark.parametrize("kind", [None, ""])
def test_missing_key_loads_as_root(session, insert_row, kind):
    insert_row("employees", name="Nobody", kind=kind)

    assert type(session.query(Employee).first()) is Employee


def test_new_manager_is_saved_with_its_class_name(session, engine):
    manager = Manager(name="Mia")
    assert manager.kind is None

    session.add(manager)
    session.commit()

    assert manager.kind == "Manager"
    rows = engine.execute('SELECT "kind" FROM "employees" WHERE "id" = ?', (manager.id,))
    assert rows[0]["kind"] == "Manager"


@pytest.mark.parametrize("model", [Employee, Staff, Manager])
def test_round_trip_through_root_query(session, model):
    obj = model(name="Round")
    session.add(obj)
    session.commit()
    session.expunge_all()

    loaded = session.query(Employee).get(obj.id)

    assert loaded is not obj
    assert type(loaded) is model
    assert loaded.kind == model.__name__


def test_scoped_queries_never_return_siblings(session):
    for obj in (Staff(name="s1"), Staff(name="s2"), Manager(name="m1"), Employee(name="e1")):
        session.add(obj)
    session.commit()
    session.expunge_all()

    staff = session.query(Staff).all()
    managers = session.query(Manager).all()
    everyone = session.query(Employee).order_by("id").all()

    assert [s.name for s in staff] == ["s1", "s2"]
    assert all(type(s) is Staff for s in staff)
    assert [type(m) for m in managers] == [Manager]
    assert [type(e) for e in everyone] == [Staff, Staff, Manager, Employee]
    assert session.query(Staff).count() == 2


def test_scoped_query_filters_combine_with_discriminator(session):
    session.add(Staff(name="Ann"))
    session.add(Manager(name="Ann"))
    session.commit()

    found = session.query(Staff).filter(name="Ann").all()
    assert [type(f) for f in found] == [Staff]

    found = session.query(Employee).filter(col("name") == "Ann").all()
    assert {type(f) for f in found} == {Staff, Manager}


def test_get_through_sibling_scope_finds_nothing(session):
    manager = Manager(name="Max")
    session.add(manager)
    session.commit()

    assert session.query(Staff).get(manager.id) is None
    assert session.get(Manager, manager.id) is manager


def test_explicit_key_is_never_overwritten(session):
    employee = Employee(name="Promoted", kind="Staff")
    session.add(employee)
    session.commit()
    session.expunge_all()

    assert type(session.get(Employee, employee.id)) is Staff


def test_update_does_not_refill_the_key(session):
    staff = Staff(name="Temp")
    session.add(staff)
    session.commit()

    staff.kind = None
    session.commit()
    session.expunge_all()

    reloaded = session.get(Employee, staff.id)
    assert type(reloaded) is Employee
    assert reloaded.kind is None


def test_one_row_is_one_object_across_scopes(session):
    session.add(Staff(name="Solo"))
    session.commit()
    session.expunge_all()

    through_root = session.query(Employee).first()
    through_subclass = session.query(Staff).first()

    assert through_root is through_subclass


def test_column_defaults_apply_to_subclass_columns(session):
    manager = Manager(name="Default")
    session.add(manager)
    session.commit()
    session.expunge_all()

    assert session.get(Manager, manager.id).reports == 0


def test_subclass_query_replaces_a_cached_instance_of_another_class(session):
    employee = Employee(name="Clerk", kind="Staff")
    session.add(employee)
    session.commit()

    staff = session.query(Staff).all()

    assert [type(s) for s in staff] == [Staff]
    assert staff[0].id == employee.id
    assert employee._orm_state == ObjectState.DETACHED
    assert session.query(Employee).first() is staff[0]


def test_get_through_subclass_scope_reloads_a_cached_root_instance(session):
    employee = Employee(name="Boss", kind="Manager")
    session.add(employee)
    session.commit()

    manager = session.query(Manager).get(employee.id)

    assert type(manager) is Manager
    assert manager.name == "Boss"
    assert session.get(Employee, employee.id) is manager
