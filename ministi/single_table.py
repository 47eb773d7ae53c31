"""
Single-table inheritance: every class of a hierarchy is stored in the root's
table, and one discriminator column says which class a row belongs to.

Configure it once on the root class, before declaring subclasses::

    class Employee(Model):
        id = Number(pk=True)
        name = Text()
        kind = Text()

        class Meta:
            table_name = "employees"
            discriminator = "kind"

    class Staff(Employee): ...
    class Manager(Employee): ...

By default the discriminator column holds the class name. ``model_map``
(stored value -> class, class name or None) and ``key_map`` (class -> stored
value) override that, each as a dict or a callable::

    Employee.single_table_inheritance("kind", model_map={1: "Staff", 2: "Manager"})

When only ``model_map`` is a dict, ``key_map`` is its inverse. Dict key maps
look a class up by the class itself, then by its name, and fall back to the
class name when both miss.

Rows read through the root's dataset become instances of the mapped class;
rows read through a subclass's dataset are restricted to that class and its
descendants. New instances get their discriminator filled in right before
their first INSERT unless one was set explicitly.
"""
import logging
from collections.abc import Mapping

from ministi.errors import ConfigurationError, DuplicateDiscriminatorError, InvalidMappingError
from ministi.orm_types import Number, Text

logger = logging.getLogger("MiniSTI.single_table")


def _default_model_map(value):
    if value is not None and value != "":
        return value
    return None


def _model_name(model):
    return model.__name__


def _name_of(reference):
    if isinstance(reference, type):
        return reference.__name__
    return str(reference)


class KeyMap(dict):
    """Class -> stored value table.

    Lookups by a class that is not a key retry with the class name, then
    fall back to the class name itself.
    """

    def __missing__(self, key):
        if isinstance(key, type):
            name = key.__name__
            if name in self:
                return self[name]
            return name
        raise KeyError(key)


class TypeRegistry:
    """Mapping state shared, by reference, by every class of one hierarchy."""

    def __init__(self, root, key, dataset, model_map, key_map):
        self.root = root
        self.key = key
        self.dataset = dataset
        self.model_map = model_map
        self.key_map = key_map
        self.models = {root.__name__: root}
        self._owners = {}

    def __repr__(self):
        return f"<TypeRegistry root={self.root.__name__} key={self.key} models={sorted(self.models)}>"

    def value_for(self, model):
        """The discriminator value stored for instances of ``model``."""
        if isinstance(self.key_map, KeyMap):
            return self.key_map[model]
        return self.key_map(model)

    def model_for(self, value):
        """The class reference the model map gives for a stored value."""
        if isinstance(self.model_map, Mapping):
            return self.model_map.get(value)
        return self.model_map(value)

    def resolve(self, reference):
        if reference is None:
            return self.root
        if isinstance(reference, type):
            return reference
        if isinstance(reference, str):
            model = self.models.get(reference)
            if model is None:
                logger.debug("Unknown model name %r for %s, loading as %s",
                             reference, self.key, self.root.__name__)
                return self.root
            return model
        raise InvalidMappingError(f"Invalid model type used: {reference!r}")

    def model_for_row(self, row):
        return self.resolve(self.model_for(row.get(self.key)))

    def load(self, row):
        """Row-decoding hook: build an instance of the class the row's discriminator names."""
        return self.model_for_row(row)._mapper.load(row)

    def set_key(self, instance):
        """Pre-insert hook: fill in the discriminator unless it was set explicitly.

        A value equal to the column default counts as unset.
        """
        current = getattr(instance, self.key, None)
        default = self.root._mapper.columns[self.key].default
        if current is None or current == "" or current == default:
            setattr(instance, self.key, self.value_for(type(instance)))

    def check(self, model):
        """Raise if ``model`` cannot join the hierarchy. Mutates nothing."""
        name = model.__name__
        if name in self.models and self.models[name] is not model:
            raise ConfigurationError(
                f"Another class named {name} is already part of the {self.root.__name__} hierarchy"
            )
        value = self.value_for(model)
        owner = self._owners.get(value)
        if owner is not None and owner is not model:
            raise DuplicateDiscriminatorError(
                f"{name} and {owner.__name__} would both be stored with {self.key}={value!r}"
            )
        return value

    def add(self, model):
        value = self.check(model)
        self.models[model.__name__] = model
        self._owners[value] = model
        return value

    def scoped_dataset(self, mapper):
        """The root dataset restricted to ``mapper``'s class and its descendants."""
        values = []
        for member in [mapper] + mapper.descendants():
            value = self.value_for(member.cls)
            if value not in values:
                values.append(value)
        column = self.dataset.column(self.key)
        if len(values) == 1:
            return self.dataset.filter(column == values[0])
        return self.dataset.filter(column.in_(values))


def configure(model, key, model_map=None, key_map=None):
    """Turn ``model`` into the root of a single-table hierarchy discriminated by ``key``."""
    mapper = model._mapper
    if mapper.sti is not None:
        if mapper.sti.root is model:
            raise ConfigurationError(f"{model.__name__} is already configured for single-table inheritance")
        raise ConfigurationError(
            f"{model.__name__} belongs to the {mapper.sti.root.__name__} hierarchy and cannot be configured again"
        )
    if model_map is None:
        model_map = _default_model_map
    elif not (isinstance(model_map, Mapping) or callable(model_map)):
        raise ConfigurationError(f"model_map must be a mapping or a callable, got {model_map!r}")
    elif isinstance(model_map, Mapping):
        model_map = dict(model_map)

    if key_map is not None:
        if isinstance(key_map, Mapping):
            key_map = KeyMap(key_map)
        elif not callable(key_map):
            raise ConfigurationError(f"key_map must be a mapping or a callable, got {key_map!r}")
    elif isinstance(model_map, Mapping):
        key_map = KeyMap((_name_of(reference), value) for value, reference in model_map.items())
    else:
        key_map = _model_name

    if key not in mapper.columns:
        if isinstance(model_map, Mapping) and model_map and all(
            isinstance(value, int) and not isinstance(value, bool) for value in model_map
        ):
            mapper.add_column(key, Number())
        else:
            mapper.add_column(key, Text())

    dataset = mapper.dataset.clone(row_proc=None)
    registry = TypeRegistry(model, key, dataset, model_map, key_map)
    registry.add(model)
    dataset.row_proc = registry.load
    mapper.set_dataset(dataset)
    mapper.sti = registry
    mapper.before_insert_hooks.append(registry.set_key)

    logger.info("Configured single-table inheritance on %s (table=%s, key=%s)",
                model.__name__, mapper.table_name, key)
    return registry


def register_subtype(mapper):
    """Attach a newly declared subclass mapper to its parent's hierarchy."""
    parent = mapper.parent
    registry = parent.sti

    value = registry.add(mapper.cls)
    mapper.sti = registry
    parent.children.append(mapper.cls)

    mapper.set_dataset(registry.scoped_dataset(mapper))
    ancestor = parent
    while ancestor is not None and ancestor.cls is not registry.root:
        ancestor.set_dataset(registry.scoped_dataset(ancestor))
        ancestor = ancestor.parent

    logger.debug("Registered %s under %s with %s=%r",
                 mapper.cls.__name__, parent.cls.__name__, registry.key, value)
    return registry
