import re

class QueryBuilder:
    TYPE_MAP = {str: "TEXT", int: "INTEGER", float: "REAL", bool: "INTEGER"}

    def __init__(self):
        self._safe_ident_pattern = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

    def _quote(self, identifier):
        if not identifier or not self._safe_ident_pattern.match(str(identifier)):
            raise ValueError(f"Unsafe SQL identifier: {identifier}")
        return f'"{identifier}"'

    def _where(self, where):
        if where is None:
            return "", []
        sql, params = where.compile(self)
        return f" WHERE {sql}", list(params)

    def build_select(self, table_name, where=None, order_by=None, limit=None, offset=None):
        """Build SELECT SQL for a whole table row. ``order_by`` is a list of (column, direction)."""
        table = self._quote(table_name)
        where_sql, params = self._where(where)
        sql = f"SELECT {table}.* FROM {table}{where_sql}"

        if order_by:
            order_clauses = []
            for column, direction in order_by:
                direction = direction.upper()
                if direction not in ("ASC", "DESC"):
                    raise ValueError(f"Invalid sort direction: {direction}")
                order_clauses.append(f"{table}.{self._quote(column)} {direction}")
            sql += " ORDER BY " + ", ".join(order_clauses)

        if limit is not None:
            sql += f" LIMIT {int(limit)}"
            if offset is not None: sql += f" OFFSET {int(offset)}"
        elif offset is not None:
            sql += f" LIMIT -1 OFFSET {int(offset)}"

        return sql, tuple(params)

    def build_count(self, table_name, where=None):
        table = self._quote(table_name)
        where_sql, params = self._where(where)
        return f"SELECT COUNT(*) FROM {table}{where_sql}", tuple(params)

    def build_insert(self, table_name, data):
        """Build INSERT SQL from table name and data dict. Does not use mapper."""
        table = self._quote(table_name)
        fields = list(data.keys())
        if not fields:
            return f"INSERT INTO {table} DEFAULT VALUES", ()
        quoted_fields = [self._quote(f) for f in fields]
        placeholders = ", ".join(["?" for _ in fields])
        values = [data[f] for f in fields]
        sql = f"INSERT INTO {table} ({', '.join(quoted_fields)}) VALUES ({placeholders})"
        return sql, tuple(values)

    def build_update(self, table_name, data, pk_column="id"):
        """Build UPDATE SQL from table name and data dict. data must contain _pk for WHERE. Does not use mapper."""
        table = self._quote(table_name)
        data = dict(data)
        pk_val = data.pop("_pk", None)
        if pk_val is None:
            raise ValueError("update data must contain _pk for WHERE clause")
        set_parts = []
        params = []
        for column, val in data.items():
            set_parts.append(f"{self._quote(column)} = ?")
            params.append(val)
        params.append(pk_val)
        sql = f"UPDATE {table} SET {', '.join(set_parts)} WHERE {self._quote(pk_column)} = ?"
        return sql, tuple(params)

    def build_delete(self, table_name, pk_value, pk_column="id"):
        """Build DELETE SQL from table name and pk. Does not use mapper."""
        table = self._quote(table_name)
        pk_col = self._quote(pk_column)
        sql = f"DELETE FROM {table} WHERE {pk_col} = ?"
        return sql, (pk_value,)

    def build_create_table(self, table_name, columns, pk):
        """Build CREATE TABLE SQL from an ordered dict of name -> Column."""
        column_defs = []
        for name, column in columns.items():
            sql_type = self.TYPE_MAP.get(column.dtype, "TEXT")
            constraints = []
            if name == pk:
                constraints.append("PRIMARY KEY AUTOINCREMENT" if sql_type == "INTEGER" else "PRIMARY KEY")
            else:
                if not column.nullable:
                    constraints.append("NOT NULL")
                if column.unique:
                    constraints.append("UNIQUE")
            column_defs.append(f"{self._quote(name)} {sql_type} {' '.join(constraints)}".strip())
        return f"CREATE TABLE IF NOT EXISTS {self._quote(table_name)} ({', '.join(column_defs)})"
