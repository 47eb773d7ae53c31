from abc import ABC, abstractmethod

class Transaction(ABC):
    def __init__(self, session, entity):
        self.session = session
        self.entity = entity

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.entity!r}>"

    @abstractmethod
    def prepare(self):
        """Return the (sql, params) pair that writes this change."""


class InsertTransaction(Transaction):
    def prepare(self):
        mapper = self.entity._mapper

        self.entity.before_create()
        for hook in mapper.before_insert_hooks:
            hook(self.entity)

        data = mapper.insert_values(self.entity)
        return self.session.query_builder.build_insert(mapper.table_name, data)


class UpdateTransaction(Transaction):
    def prepare(self):
        mapper = self.entity._mapper
        old_state = self.session._snapshots.get(id(self.entity))
        data = mapper.changed_values(self.entity, old_state)
        if not data:
            return None
        data["_pk"] = self.entity.__dict__.get(mapper.pk)
        return self.session.query_builder.build_update(mapper.table_name, data, pk_column=mapper.pk)


class DeleteTransaction(Transaction):
    def prepare(self):
        mapper = self.entity._mapper
        pk_val = self.entity.__dict__.get(mapper.pk)
        return self.session.query_builder.build_delete(mapper.table_name, pk_val, pk_column=mapper.pk)
