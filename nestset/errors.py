"""Errors raised by nested-set operations.

Every structural failure surfaces to the caller as one of these. Precondition
errors are raised before any write; StoreFailureError is raised after the
enclosing transaction has been rolled back.
"""


class NestedSetError(Exception):
    """Base class for all nested-set errors."""


class InvalidOperationError(NestedSetError):
    def __init__(self, message: str, node_id: int | None = None) -> None:
        self.node_id = node_id
        super().__init__(message)


class ConstraintViolationError(NestedSetError):
    def __init__(
        self,
        message: str,
        node_id: int | None = None,
        target_id: int | None = None,
    ) -> None:
        self.node_id = node_id
        self.target_id = target_id
        super().__init__(message)


class NodeNotFoundError(NestedSetError):
    def __init__(self, node_id: int | None, reason: str | None = None) -> None:
        self.node_id = node_id
        message = f"Node not found: {node_id}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class StoreFailureError(NestedSetError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Store failure during {operation}")
