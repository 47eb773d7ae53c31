import pytest

from ministi import FlushError, Model, Number, Text
from ministi.session import Session
from ministi.states import ObjectState


class Department(Model):
    id = Number(pk=True)
    name = Text(nullable=False)
    budget = Number(default=100)

    class Meta:
        table_name = "departments"


class Ticket(Model):
    id = Number(pk=True)
    kind = Text()
    note = Text()

    class Meta:
        table_name = "tickets"
        discriminator = "kind"

    def before_create(self):
        self.note = f"kind before hook: {self.kind}"


class Bug(Ticket):
    pass


@pytest.fixture
def session(session_for):
    return session_for(Department, Ticket)


def test_add_commit_and_get(session):
    dept = Department(name="IT")
    assert dept._orm_state == ObjectState.TRANSIENT

    session.add(dept)
    assert dept._orm_state == ObjectState.PENDING
    session.commit()

    assert dept.id is not None
    assert dept._orm_state == ObjectState.PERSISTENT
    assert dept.budget == 100
    assert session.get(Department, dept.id) is dept


def test_plain_models_load_without_a_row_proc(session):
    session.add(Department(name="Ops"))
    session.commit()
    session.expunge_all()

    loaded = session.query(Department).filter(name="Ops").first()
    assert type(loaded) is Department
    assert loaded.budget == 100


def test_dirty_objects_are_updated_on_commit(session, engine):
    dept = Department(name="Sales")
    session.add(dept)
    session.commit()

    dept.budget = 500
    session.commit()

    rows = engine.execute('SELECT "budget" FROM "departments" WHERE "id" = ?', (dept.id,))
    assert rows[0]["budget"] == 500


def test_queries_autoflush_pending_objects(session):
    session.add(Department(name="Pending"))
    assert session.query(Department).count() == 1


def test_delete(session):
    dept = Department(name="Gone")
    session.add(dept)
    session.commit()

    session.delete(dept)
    session.commit()

    assert session.query(Department).count() == 0
    assert dept._session is None


def test_delete_of_pending_object_cancels_the_insert(session):
    dept = Department(name="Never")
    session.add(dept)
    session.delete(dept)
    session.commit()

    assert dept._orm_state == ObjectState.TRANSIENT
    assert session.query(Department).count() == 0


def test_failed_flush_rolls_back(session):
    good = Department(name="Good")
    bad = Department(name=None)
    session.add(good)
    session.add(bad)

    with pytest.raises(FlushError):
        session.commit()

    assert good.id is None
    assert good._orm_state == ObjectState.TRANSIENT
    assert session.query(Department).count() == 0


def test_primary_key_cannot_change_after_persisting(session):
    dept = Department(name="Fixed")
    session.add(dept)
    session.commit()

    with pytest.raises(AttributeError):
        dept.id = dept.id + 1


def test_user_before_create_runs_before_the_discriminator_is_filled(session):
    bug = Bug()
    session.add(bug)
    session.commit()

    assert bug.note == "kind before hook: None"
    assert bug.kind == "Bug"


def test_context_manager_detaches_objects(engine, session_for):
    session_for(Department)

    with Session(engine) as session:
        dept = Department(name="Scoped")
        session.add(dept)
        session.commit()

    assert dept._orm_state == ObjectState.DETACHED
    assert dept._session is None
