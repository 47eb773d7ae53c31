"""
Filter expressions for datasets, similar to SQLAlchemy.

Expressions are plain objects; ``compile(builder)`` turns one into a SQL
fragment plus its parameters, using the builder for identifier quoting.
"""


class FilterExpression:
    """Base class for all filter expressions"""

    def __and__(self, other):
        """Combine with AND operator"""
        return and_(self, other)

    def __or__(self, other):
        """Combine with OR operator"""
        return or_(self, other)

    def __invert__(self):
        """Negate a filter using the ~ operator"""
        return NotFilter(self)

    def compile(self, builder):
        raise NotImplementedError


class ColumnFilter:
    """A column reference, optionally qualified by its table."""

    def __init__(self, column_name, table_name=None):
        self.column_name = column_name
        self.table_name = table_name

    def __eq__(self, other):
        return ComparisonFilter(self, '=', other)

    def __ne__(self, other):
        return ComparisonFilter(self, '!=', other)

    def __lt__(self, other):
        return ComparisonFilter(self, '<', other)

    def __le__(self, other):
        return ComparisonFilter(self, '<=', other)

    def __gt__(self, other):
        return ComparisonFilter(self, '>', other)

    def __ge__(self, other):
        return ComparisonFilter(self, '>=', other)

    __hash__ = None

    def in_(self, values):
        """IN operator - filter by list of values"""
        return InFilter(self, values)

    def is_null(self):
        return IsNullFilter(self)

    def is_not_null(self):
        return IsNullFilter(self, negated=True)

    def compile(self, builder):
        if self.table_name:
            return f"{builder._quote(self.table_name)}.{builder._quote(self.column_name)}"
        return builder._quote(self.column_name)

    def __repr__(self):
        if self.table_name:
            return f"<col {self.table_name}.{self.column_name}>"
        return f"<col {self.column_name}>"


class ComparisonFilter(FilterExpression):
    """Represents a comparison filter (=, !=, <, >, <=, >=)"""

    def __init__(self, column, operator, value):
        self.column = column
        self.operator = operator
        self.value = value

    def compile(self, builder):
        lhs = self.column.compile(builder)
        if isinstance(self.value, ColumnFilter):
            return f"{lhs} {self.operator} {self.value.compile(builder)}", []
        if self.value is None and self.operator in ('=', '!='):
            return f"{lhs} IS {'NOT ' if self.operator == '!=' else ''}NULL", []
        return f"{lhs} {self.operator} ?", [self.value]

    def __repr__(self):
        return f"<{self.column!r} {self.operator} {self.value!r}>"


class InFilter(FilterExpression):
    """Represents an IN filter"""

    def __init__(self, column, values):
        self.column = column
        self.values = list(values)

    def compile(self, builder):
        if not self.values:
            # Nothing can match an empty set.
            return "0 = 1", []
        placeholders = ", ".join("?" for _ in self.values)
        return f"{self.column.compile(builder)} IN ({placeholders})", list(self.values)

    def __repr__(self):
        return f"<{self.column!r} IN {self.values!r}>"


class IsNullFilter(FilterExpression):
    def __init__(self, column, negated=False):
        self.column = column
        self.negated = negated

    def compile(self, builder):
        return f"{self.column.compile(builder)} IS {'NOT ' if self.negated else ''}NULL", []


class NotFilter(FilterExpression):
    """Negates a filter expression (NOT logic)"""

    def __init__(self, filter_expr):
        self.filter_expr = filter_expr

    def compile(self, builder):
        sql, params = self.filter_expr.compile(builder)
        return f"NOT ({sql})", params


class CombinedFilter(FilterExpression):
    """Combines multiple filters with AND or OR logic"""

    def __init__(self, *filters, logic='AND'):
        self.filters = filters
        self.logic = logic.upper()
        if self.logic not in ('AND', 'OR'):
            raise ValueError("Logic must be 'AND' or 'OR'")

    def compile(self, builder):
        parts = []
        params = []
        for expr in self.filters:
            sql, expr_params = expr.compile(builder)
            parts.append(f"({sql})")
            params.extend(expr_params)
        return f" {self.logic} ".join(parts), params

    def __repr__(self):
        return f"<{self.logic} {list(self.filters)!r}>"


def _combine(filters, logic):
    flat = []
    for expr in filters:
        if expr is None:
            continue
        if isinstance(expr, CombinedFilter) and expr.logic == logic:
            flat.extend(expr.filters)
        else:
            flat.append(expr)
    if len(flat) == 1:
        return flat[0]
    return CombinedFilter(*flat, logic=logic)


def col(column_name, table_name=None):
    """Create a ColumnFilter to start building filter expressions"""
    return ColumnFilter(column_name, table_name)


def and_(*filters):
    """Combine multiple filters with AND logic"""
    return _combine(filters, 'AND')


def or_(*filters):
    """Combine multiple filters with OR logic"""
    return _combine(filters, 'OR')
