# ============================================================================
# Custom Exceptions
# ============================================================================
from typing import Optional


class LexException(Exception):
    """Base exception for the Lex engine"""
    def __init__(
        self,
        detail: str,
        status_code: int = 400,
        error_code: Optional[str] = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code or "LEX_ERROR"
        super().__init__(self.detail)


class NotFound(LexException):
    def __init__(self, entity: str, entity_id):
        super().__init__(
            detail=f"{entity} not found: {entity_id}",
            status_code=404,
            error_code="NOT_FOUND"
        )
        self.entity = entity
        self.entity_id = entity_id


class Conflict(LexException):
    def __init__(self, message: str):
        super().__init__(
            detail=message,
            status_code=409,
            error_code="CONFLICT"
        )


class InvalidState(LexException):
    def __init__(self, message: str):
        super().__init__(
            detail=message,
            status_code=422,
            error_code="INVALID_STATE"
        )


class Exhausted(Exception):
    """A question pool could not supply its target count (recorded, never raised)"""
    def __init__(self, pool: str, wanted: int, available: int):
        self.detail = f"Pool '{pool}' supplied {available} of {wanted} questions"
        super().__init__(self.detail)
        self.pool = pool
        self.wanted = wanted
        self.available = available
