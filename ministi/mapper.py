from ministi.builder import QueryBuilder
from ministi.dataset import Dataset
from ministi.errors import ConfigurationError
from ministi.states import ObjectState

_UNSET = object()


class Mapper:
    """Per-class mapping metadata: table, columns, primary key and dataset.

    Subclasses of a mapped class share its table; their ``dataset`` is scoped
    by ``ministi.single_table`` when the parent takes part in single-table
    inheritance.
    """

    def __init__(self, cls, columns, meta_attrs):
        self.cls = cls
        self.meta = meta_attrs or {}

        self.parent = None
        self.children = []
        self.declared_columns = dict(columns)
        self.columns = {}
        self.pk = None
        self.sti = None

        self._resolve_parent()
        self._resolve_table_name()
        self._resolve_columns()
        self._resolve_pk()

        self.before_insert_hooks = list(self.parent.before_insert_hooks) if self.parent else []
        self._simple_table = _UNSET
        self.dataset = self.parent.dataset if self.parent else Dataset(self.table_name)

    def __repr__(self):
        cols = ", ".join(self.columns.keys())
        parent = self.parent.cls.__name__ if self.parent else "None"
        return (
            f"<Mapper class={self.cls.__name__} table={self.table_name} "
            f"columns=[{cols}] pk={self.pk} parent={parent}>"
        )

    def _resolve_parent(self):
        for base in self.cls.__bases__:
            if hasattr(base, "_mapper"):
                self.parent = base._mapper
                return

    def _resolve_table_name(self):
        requested = self.meta.get("table_name")
        if self.parent:
            if requested and requested != self.parent.table_name:
                raise ConfigurationError(
                    f"{self.cls.__name__} must share table '{self.parent.table_name}' "
                    f"with {self.parent.cls.__name__}, got '{requested}'"
                )
            self.table_name = self.parent.table_name
        else:
            self.table_name = requested or self.cls.__name__ + "s"

    def _resolve_columns(self):
        if self.parent:
            self.columns = dict(self.parent.columns) | self.declared_columns
        else:
            self.columns = dict(self.declared_columns)

    def _resolve_pk(self):
        pk_cols = [name for name, column in self.declared_columns.items() if column.pk]
        if pk_cols:
            if self.parent and pk_cols[0] != self.parent.pk:
                raise ConfigurationError(
                    f"{self.cls.__name__} cannot redefine the primary key of {self.parent.cls.__name__}"
                )
            self.pk = pk_cols[0]
        elif self.parent:
            self.pk = self.parent.pk
        else:
            raise ConfigurationError(f"Class {self.cls.__name__} has no primary key defined")

    @property
    def root(self):
        mapper = self
        while mapper.parent:
            mapper = mapper.parent
        return mapper

    def add_column(self, name, column):
        self.declared_columns[name] = column
        self.columns[name] = column

    def descendants(self):
        out = []
        for child_cls in self.children:
            out.append(child_cls._mapper)
            out.extend(child_cls._mapper.descendants())
        return out

    def set_dataset(self, dataset):
        self.dataset = dataset
        self._simple_table = _UNSET

    @property
    def simple_table(self):
        """Quoted table name when the dataset selects a whole, unfiltered table; otherwise None."""
        if self._simple_table is _UNSET:
            if self.dataset.is_filtered:
                self._simple_table = None
            else:
                self._simple_table = QueryBuilder()._quote(self.dataset.table_name)
        return self._simple_table

    def load(self, row):
        """Build an instance of this class from a fetched row without running __init__."""
        obj = self.cls.__new__(self.cls)
        object.__setattr__(obj, '_orm_state', ObjectState.TRANSIENT)
        object.__setattr__(obj, '_session', None)
        for name in self.columns:
            object.__setattr__(obj, name, row.get(name))
        return obj

    def insert_values(self, entity):
        data = {}
        for col_name, col_obj in self.columns.items():
            value = entity.__dict__.get(col_name)
            if col_name == self.pk and value is None:
                continue
            if value is None and col_obj.default is not None:
                value = col_obj.default
            data[col_name] = value
        return data

    def snapshot(self, entity):
        return {name: entity.__dict__.get(name) for name in self.columns}

    def changed_values(self, entity, old_state):
        if old_state is None:
            return {name: value for name, value in self.snapshot(entity).items() if name != self.pk}
        return {
            name: entity.__dict__.get(name)
            for name in self.columns
            if name != self.pk and entity.__dict__.get(name) != old_state.get(name)
        }
