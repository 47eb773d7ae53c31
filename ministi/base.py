from ministi import single_table
from ministi.errors import ConfigurationError
from ministi.mapper import Mapper
from ministi.orm_types import Column
from ministi.states import ObjectState

class Model:
    def __repr__(self):
        pk_val = self.__dict__.get(self._mapper.pk) or "New"
        return f"<{self.__class__.__name__}(id={pk_val})>"

    def __init__(self, **kwargs):
        object.__setattr__(self, '_orm_state', ObjectState.TRANSIENT)
        object.__setattr__(self, '_session', None)
        for name, column in self._mapper.columns.items():
            object.__setattr__(self, name, column.default)
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        columns = {
            name: col
            for name, col in cls.__dict__.items()
            if isinstance(col, Column)
        }

        meta_cls = cls.__dict__.get("Meta")
        meta_attrs = {}
        if meta_cls:
            for attr in dir(meta_cls):
                if not attr.startswith('_'):
                    meta_attrs[attr] = getattr(meta_cls, attr)

        mapper = Mapper(cls, columns, meta_attrs)
        if mapper.parent and mapper.parent.sti is None:
            raise ConfigurationError(
                f"{cls.__name__} subclasses {mapper.parent.cls.__name__}, which has no discriminator; "
                f"configure single-table inheritance on {mapper.parent.cls.__name__} first"
            )
        cls._mapper = mapper
        if mapper.parent:
            single_table.register_subtype(mapper)

        if "discriminator" in meta_attrs:
            single_table.configure(
                cls, meta_attrs["discriminator"],
                model_map=meta_attrs.get("model_map"),
                key_map=meta_attrs.get("key_map"),
            )

    @classmethod
    def single_table_inheritance(cls, key, model_map=None, key_map=None):
        """Store this class and every subclass declared afterwards in one table, discriminated by ``key``."""
        return single_table.configure(cls, key, model_map=model_map, key_map=key_map)

    @classmethod
    def load(cls, row):
        """Materialize a row read from this class's table."""
        mapper = cls._mapper
        if mapper.dataset.row_proc:
            return mapper.dataset.row_proc(row)
        return mapper.load(row)

    def before_create(self):
        """Called right before the first INSERT of this instance. Override to add behaviour."""

    def __setattr__(self, name, value):
        mapper = self._mapper
        if name == mapper.pk:
            current_id = self.__dict__.get(name)
            state = self.__dict__.get('_orm_state')

            if state == ObjectState.PERSISTENT and current_id is not None and current_id != value:
                raise AttributeError(
                    f"Critical error: Cannot change primary key '{name}' "
                    f"for {self.__class__.__name__} after it has been persisted."
                )

        object.__setattr__(self, name, value)
