class Column:
    def __init__(self, dtype, pk=False, nullable=True, unique=False, default=None):
        self.dtype = dtype
        self.pk = pk
        self.nullable = nullable
        self.unique = unique
        self.default = default

    def __repr__(self):
        flags = []
        if self.pk:
            flags.append("pk")
        if not self.nullable:
            flags.append("not null")
        if self.unique:
            flags.append("unique")
        if self.default is not None:
            flags.append(f"default={self.default!r}")
        suffix = f" {' '.join(flags)}" if flags else ""
        return f"<{self.__class__.__name__}{suffix}>"


class Text(Column):
    def __init__(self, pk=False, nullable=True, unique=False, default=None):
        super().__init__(str, pk, nullable, unique, default)


class Number(Column):
    def __init__(self, pk=False, nullable=True, unique=False, default=None):
        super().__init__(int, pk, nullable, unique, default)
