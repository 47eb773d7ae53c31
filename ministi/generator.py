from ministi.builder import QueryBuilder

class SchemaGenerator:
    """Creates one table per hierarchy holding every column declared anywhere in it."""

    def __init__(self, query_builder=None):
        self.query_builder = query_builder or QueryBuilder()

    def table_columns(self, mapper):
        root = mapper.root
        columns = dict(root.columns)
        for descendant in root.descendants():
            for name, column in descendant.columns.items():
                columns.setdefault(name, column)
        return columns

    def generate_create_table(self, mapper):
        root = mapper.root
        return self.query_builder.build_create_table(root.table_name, self.table_columns(root), root.pk)

    def create_all(self, engine, models):
        """``models`` is an iterable of model classes or a {class: mapper} registry."""
        seen_tables = set()
        for model in models:
            root = model._mapper.root
            if root.table_name in seen_tables:
                continue
            engine.execute(self.generate_create_table(root))
            seen_tables.add(root.table_name)
