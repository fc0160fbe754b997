"""Typed errors raised by the node registry and movement ledger services.

Routers translate these into HTTP responses:

    LedgerValidationError  -> 400  (ReferentialError and its sub-kinds included)
    ConflictError          -> 409
    NotFoundError          -> 404

DRAFT-only line edits report an outcome instead of raising; an edit of a
frozen event maps to 409 with IMMUTABLE_MOVEMENT_DETAIL.

Anything else is an unexpected failure and surfaces as an opaque 500.
"""

IMMUTABLE_MOVEMENT_DETAIL = "Posted/Canceled movement is immutable"


class LedgerValidationError(ValueError):
    pass


class ReferentialError(LedgerValidationError):
    message = "Invalid reference"

    def __init__(self, message: str | None = None, *, line_index: int | None = None):
        self.line_index = line_index
        super().__init__(message or self.message)


class SameNodeError(ReferentialError):
    message = "From and to node cannot be same"


class BadFromNodeError(ReferentialError):
    message = "Invalid from node"


class BadToNodeError(ReferentialError):
    message = "Invalid to node"


class BadItemError(ReferentialError):
    message = "Invalid item"


class BadUnitError(ReferentialError):
    message = "Invalid unit"


class ConflictError(ValueError):
    pass


class NodeInUseError(ConflictError):
    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__("Node is referenced by inventory movements and cannot be deleted.")


class DuplicateNodeError(ConflictError):
    def __init__(self, message: str = "Node already exists for this reference."):
        super().__init__(message)


class TenantMismatchError(ConflictError):
    def __init__(self, message: str = "Referenced record belongs to another organization."):
        super().__init__(message)


class NotFoundError(LookupError):
    pass


class MovementNotFoundError(NotFoundError):
    def __init__(self, message: str = "Movement not found"):
        super().__init__(message)


class NodeNotFoundError(NotFoundError):
    def __init__(self, message: str = "Node not found"):
        super().__init__(message)


class SourceNotFoundError(NotFoundError):
    pass
