import pytest

from ministi.builder import QueryBuilder
from ministi.database import DatabaseEngine
from ministi.generator import SchemaGenerator
from ministi.session import Session


@pytest.fixture
def engine():
    engine = DatabaseEngine(":memory:")
    yield engine
    engine.close()


@pytest.fixture
def session_for(engine):
    """Create the tables of the given model hierarchies and open a session on them."""
    sessions = []

    def factory(*models):
        SchemaGenerator().create_all(engine, models)
        session = Session(engine)
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def insert_row(engine):
    """Write a row behind the ORM's back, as another application would."""
    def insert(table_name, **values):
        sql, params = QueryBuilder().build_insert(table_name, values)
        return engine.execute_insert(sql, params)

    return insert
