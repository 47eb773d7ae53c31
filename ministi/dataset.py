import copy

from ministi.builder import QueryBuilder
from ministi.filters import and_, col


class Dataset:
    """An immutable description of a SELECT over one table.

    Every refinement (``filter``, ``order_by``, ``limit``) returns a new
    dataset and leaves the receiver untouched, so a model can hand out its
    dataset freely. ``row_proc`` is the row-decoding hook: when set, it is
    called with each fetched row (a ``dict`` of column name to value) and
    its result is what the query yields. Clones keep the ``row_proc`` of the
    dataset they were derived from.
    """

    def __init__(self, table_name, where=None, order_by=(), limit=None, offset=None, row_proc=None):
        self.table_name = table_name
        self.where = where
        self.order = tuple(order_by)
        self.limit_value = limit
        self.offset_value = offset
        self.row_proc = row_proc

    def __repr__(self):
        return f"<Dataset {self.table_name} where={self.where!r}>"

    def clone(self, **changes):
        dataset = copy.copy(self)
        for name, value in changes.items():
            if not hasattr(dataset, name):
                raise AttributeError(f"Dataset has no attribute {name!r}")
            setattr(dataset, name, value)
        return dataset

    def column(self, column_name):
        """A column reference qualified by this dataset's table."""
        return col(column_name, self.table_name)

    def filter(self, *expressions, **equalities):
        """Return a new dataset restricted by the given expressions, ANDed with the current ones."""
        conditions = list(expressions)
        for column_name, value in equalities.items():
            conditions.append(self.column(column_name) == value)
        if not conditions:
            return self.clone()
        return self.clone(where=and_(self.where, *conditions))

    def order_by(self, *columns):
        """Columns are names, optionally prefixed by '-' for descending order."""
        order = []
        for column_name in columns:
            if column_name.startswith("-"):
                order.append((column_name[1:], "DESC"))
            else:
                order.append((column_name, "ASC"))
        return self.clone(order=tuple(order))

    def limit(self, value, offset=None):
        return self.clone(limit_value=value, offset_value=offset)

    @property
    def is_filtered(self):
        return self.where is not None

    def sql(self, builder=None):
        builder = builder or QueryBuilder()
        return builder.build_select(
            self.table_name, self.where, order_by=self.order,
            limit=self.limit_value, offset=self.offset_value
        )

    def count_sql(self, builder=None):
        builder = builder or QueryBuilder()
        return builder.build_count(self.table_name, self.where)
