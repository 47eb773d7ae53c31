class IdentityMap:
    """One object per stored row, keyed by ``(table_name, pk)``.

    Every class of a single-table hierarchy shares the table, so a row read
    through the root and through a subclass maps to the same instance.
    """

    def __init__(self):
        self._map = {}

    def get(self, table_name, pk):
        return self._map.get((table_name, pk))

    def add(self, table_name, pk, instance):
        self._map[(table_name, pk)] = instance

    def remove(self, table_name, pk):
        self._map.pop((table_name, pk), None)

    def values(self):
        return list(self._map.values())

    def clear(self):
        self._map.clear()
