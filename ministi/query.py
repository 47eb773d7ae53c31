from ministi.states import ObjectState

class Query:
    """A model's dataset bound to a session. Refinements return new queries."""

    def __init__(self, model_class, session, dataset=None):
        self.model_class = model_class
        self.session = session
        self.dataset = dataset if dataset is not None else model_class._mapper.dataset

    def __repr__(self):
        return f"<Query {self.model_class.__name__} {self.dataset!r}>"

    def _clone(self, dataset):
        return Query(self.model_class, self.session, dataset)

    def filter(self, *expressions, **equalities):
        return self._clone(self.dataset.filter(*expressions, **equalities))

    def order_by(self, *columns):
        return self._clone(self.dataset.order_by(*columns))

    def limit(self, value: int, offset=None):
        return self._clone(self.dataset.limit(value, offset))

    def all(self):
        sql, params = self.dataset.sql(self.session.query_builder)
        return self._fetch(sql, params)

    def first(self):
        results = self.limit(1).all()
        return results[0] if results else None

    def count(self):
        sql, params = self.dataset.count_sql(self.session.query_builder)
        rows = self.session.engine.execute(sql, params)
        return rows[0][0]

    def get(self, pk):
        """Look a row up by primary key within this query's scope."""
        mapper = self.model_class._mapper
        existing = self.session.identity_map.get(mapper.table_name, pk)
        if existing is not None and isinstance(existing, self.model_class):
            if getattr(existing, '_orm_state', None) == ObjectState.DELETED:
                return None
            return existing

        builder = self.session.query_builder
        if mapper.simple_table and self.dataset is mapper.dataset:
            sql = f"SELECT * FROM {mapper.simple_table} WHERE {builder._quote(mapper.pk)} = ? LIMIT 1"
            results = self._fetch(sql, (pk,))
        else:
            results = self.filter(**{mapper.pk: pk}).limit(1).all()
        return results[0] if results else None

    def _fetch(self, sql, params):
        rows = self.session.engine.execute(sql, params)
        results = []
        for row in rows:
            obj = self._hydrate(dict(row))
            if obj is not None:
                results.append(obj)
        return results

    def _hydrate(self, row):
        mapper = self.model_class._mapper
        pk_val = row.get(mapper.pk)
        existing = self.session.identity_map.get(mapper.table_name, pk_val)
        if existing is not None:
            if getattr(existing, '_orm_state', None) == ObjectState.DELETED:
                return None
            if mapper.sti is None or type(existing) is mapper.sti.model_for_row(row):
                return existing
            # the stored discriminator names another class than the cached object's
            self.session._evict(existing)

        if self.dataset.row_proc:
            obj = self.dataset.row_proc(row)
        else:
            obj = mapper.load(row)
        return self.session._make_persistent(obj)
