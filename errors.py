from typing import Optional


class StorageError(Exception):
    """The active store's backend was unreachable or rejected an operation.

    The underlying driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, entity: str, entity_id: Optional[int] = None, detail: str = ""):
        self.operation = operation
        self.entity = entity
        self.entity_id = entity_id
        self.detail = detail
        target = entity if entity_id is None else f"{entity} {entity_id}"
        message = f"Failed to {operation} {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
