import logging
from collections import deque

from ministi.builder import QueryBuilder
from ministi.errors import FlushError
from ministi.identity_map import IdentityMap
from ministi.query import Query
from ministi.states import ObjectState
from ministi.transactions import InsertTransaction, UpdateTransaction, DeleteTransaction

logger = logging.getLogger("MiniSTI.session")

class Session:
    def __init__(self, engine, query_builder=None):
        self.engine = engine
        self.query_builder = query_builder or QueryBuilder()
        self.identity_map = IdentityMap()
        self.unit_of_work = deque()
        self._snapshots = {}
        self._processed_transactions = []
        self._in_flush = False

    def query(self, model_class):
        self._autoflush()
        return Query(model_class, self)

    def get(self, model_class, pk):
        return self.query(model_class).get(pk)

    def add(self, entity):
        state = getattr(entity, '_orm_state', None)

        if any(t.entity is entity and isinstance(t, InsertTransaction) for t in self.unit_of_work):
            return

        if state == ObjectState.DETACHED:
            object.__setattr__(entity, '_session', self)
            object.__setattr__(entity, '_orm_state', ObjectState.PERSISTENT)
            pk_val = entity.__dict__.get(entity._mapper.pk)
            if pk_val is not None:
                self.identity_map.add(entity._mapper.table_name, pk_val, entity)
                self._snapshots[id(entity)] = entity._mapper.snapshot(entity)
            return

        if state == ObjectState.TRANSIENT:
            object.__setattr__(entity, '_session', self)
            object.__setattr__(entity, '_orm_state', ObjectState.PENDING)
            self.unit_of_work.append(InsertTransaction(self, entity))

    def update(self, entity):
        state = getattr(entity, '_orm_state', None)
        if state == ObjectState.PERSISTENT:
            if not any(t.entity is entity and isinstance(t, UpdateTransaction) for t in self.unit_of_work):
                self.unit_of_work.append(UpdateTransaction(self, entity))

    def delete(self, entity):
        state = getattr(entity, '_orm_state', None)
        if state == ObjectState.PENDING:
            for t in list(self.unit_of_work):
                if t.entity is entity and isinstance(t, InsertTransaction):
                    self.unit_of_work.remove(t)
            object.__setattr__(entity, '_orm_state', ObjectState.TRANSIENT)
            object.__setattr__(entity, '_session', None)
            logger.debug("Cancelled adding object %r", entity)
            return

        if state == ObjectState.PERSISTENT:
            object.__setattr__(entity, '_orm_state', ObjectState.DELETED)
            self.unit_of_work.append(DeleteTransaction(self, entity))

    def flush(self):
        if self._in_flush:
            return

        self._in_flush = True
        self._processed_transactions = []

        for obj in self._get_dirty_objects():
            if not any(t.entity is obj for t in self.unit_of_work):
                self.unit_of_work.append(UpdateTransaction(self, obj))

        if not self.unit_of_work:
            self._in_flush = False
            return

        try:
            self.engine.begin()

            while self.unit_of_work:
                transaction = self.unit_of_work.popleft()
                self._processed_transactions.append(transaction)

                statement = transaction.prepare()
                if statement is None:
                    continue
                sql, params = statement

                if isinstance(transaction, InsertTransaction):
                    new_id = self.engine.execute(sql, params, return_lastrowid=True)
                    self._after_insert(transaction.entity, new_id)
                else:
                    self.engine.execute(sql, params)
                    if isinstance(transaction, DeleteTransaction):
                        self._after_delete(transaction.entity)
                    else:
                        self._snapshots[id(transaction.entity)] = transaction.entity._mapper.snapshot(transaction.entity)

            self._processed_transactions = []

        except Exception as e:
            self.rollback()
            raise FlushError(f"Error during flush: {e}") from e
        finally:
            self._in_flush = False

    def _after_insert(self, entity, new_id):
        mapper = entity._mapper
        if entity.__dict__.get(mapper.pk) is None:
            object.__setattr__(entity, mapper.pk, new_id)
        self._make_persistent(entity)

    def _after_delete(self, entity):
        mapper = entity._mapper
        self.identity_map.remove(mapper.table_name, entity.__dict__.get(mapper.pk))
        self._snapshots.pop(id(entity), None)
        object.__setattr__(entity, '_session', None)

    def _evict(self, obj):
        mapper = obj._mapper
        self.identity_map.remove(mapper.table_name, obj.__dict__.get(mapper.pk))
        self._snapshots.pop(id(obj), None)
        object.__setattr__(obj, '_session', None)
        object.__setattr__(obj, '_orm_state', ObjectState.DETACHED)
        logger.debug("Evicted %r, its row now loads as another class", obj)

    def _make_persistent(self, obj):
        mapper = obj._mapper
        pk_val = obj.__dict__.get(mapper.pk)
        if pk_val is None:
            return obj

        existing = self.identity_map.get(mapper.table_name, pk_val)
        if existing is not None and existing is not obj:
            return existing

        object.__setattr__(obj, '_orm_state', ObjectState.PERSISTENT)
        object.__setattr__(obj, '_session', self)
        self.identity_map.add(mapper.table_name, pk_val, obj)
        self._snapshots[id(obj)] = mapper.snapshot(obj)
        return obj

    def _get_dirty_objects(self):
        dirty = []
        for obj in self.identity_map.values():
            if getattr(obj, '_orm_state', None) != ObjectState.PERSISTENT:
                continue
            old_state = self._snapshots.get(id(obj))
            if old_state is None:
                continue
            if obj._mapper.changed_values(obj, old_state):
                dirty.append(obj)
        return dirty

    def _autoflush(self):
        if self._in_flush:
            return
        if self.unit_of_work or self._get_dirty_objects():
            self.flush()

    def commit(self):
        self.flush()
        self.engine.commit()

    def rollback(self):
        self.engine.rollback()

        to_undo = self._processed_transactions + list(self.unit_of_work)

        for transaction in to_undo:
            entity = transaction.entity
            if isinstance(transaction, InsertTransaction):
                object.__setattr__(entity, entity._mapper.pk, None)
                object.__setattr__(entity, '_orm_state', ObjectState.TRANSIENT)
                object.__setattr__(entity, '_session', None)
            elif isinstance(transaction, DeleteTransaction):
                object.__setattr__(entity, '_orm_state', ObjectState.PERSISTENT)

        self.unit_of_work.clear()
        self._processed_transactions = []
        self.identity_map.clear()
        self._snapshots.clear()
        logger.debug("Rollback completed. Objects reset to safe state.")

    def expunge_all(self):
        """Forget every loaded object so the next query reads fresh instances."""
        for obj in self.identity_map.values():
            object.__setattr__(obj, '_session', None)
            object.__setattr__(obj, '_orm_state', ObjectState.DETACHED)
        self.identity_map.clear()
        self._snapshots.clear()

    def close(self):
        tracked = self.identity_map.values()
        self.rollback()
        for obj in tracked:
            object.__setattr__(obj, '_session', None)
            object.__setattr__(obj, '_orm_state', ObjectState.DETACHED)
        logger.debug("Detached %d objects.", len(tracked))

    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type: self.rollback()
        self.close()
