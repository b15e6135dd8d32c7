"""Nested-set trees: interval algebra, mutation service and traversal queries."""

__version__ = "0.1.0"

from nestset.db.connection import Database
from nestset.errors import (
    ConstraintViolationError,
    InvalidOperationError,
    NestedSetError,
    NodeNotFoundError,
    StoreFailureError,
)
from nestset.models import NestedSetSchema, Node
from nestset.service import NestedSetService, OperationState

__all__ = [
    "ConstraintViolationError",
    "Database",
    "InvalidOperationError",
    "NestedSetError",
    "NestedSetSchema",
    "NestedSetService",
    "Node",
    "NodeNotFoundError",
    "OperationState",
    "StoreFailureError",
    "__version__",
]
