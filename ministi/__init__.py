# MiniSTI - a lightweight Python ORM with single-table inheritance
from ministi.base import Model
from ministi.session import Session
from ministi.mapper import Mapper
from ministi.query import Query
from ministi.dataset import Dataset
from ministi.database import DatabaseEngine
from ministi.generator import SchemaGenerator
from ministi.filters import col, and_, or_
from ministi.orm_types import Column, Text, Number
from ministi.single_table import KeyMap, TypeRegistry, configure
from ministi.errors import (
    MiniStiError, ConfigurationError, InvalidMappingError, DuplicateDiscriminatorError, FlushError,
)

__version__ = "0.1.0"
__all__ = [
    "Model", "Session", "Mapper", "Query", "Dataset", "DatabaseEngine", "SchemaGenerator",
    "col", "and_", "or_", "Column", "Text", "Number",
    "KeyMap", "TypeRegistry", "configure",
    "MiniStiError", "ConfigurationError", "InvalidMappingError", "DuplicateDiscriminatorError", "FlushError",
]
