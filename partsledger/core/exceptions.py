from typing import Any, Dict, Iterable, Optional
from fastapi import HTTPException, status


class BaseAppException(HTTPException):
    """Domain error rendered directly by FastAPI.

    ``detail`` is a dict with a machine ``code``, a human ``message`` and the
    structured context of the failure, so callers never parse strings.
    """

    code = "app_error"

    def __init__(self, status_code: int, message: str, **context: Any):
        self.message = message
        self.context = context
        detail: Dict[str, Any] = {"code": self.code, "message": message}
        detail.update(context)
        super().__init__(status_code=status_code, detail=detail)

    def __str__(self) -> str:
        return self.message


class ValidationError(BaseAppException):
    code = "validation_error"

    def __init__(self, message: str = "Validation error", **context: Any):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message, **context)


class NotFoundError(BaseAppException):
    code = "not_found"

    def __init__(self, entity: str = "Resource", identifier: Any = None):
        message = f"{entity} not found" if identifier is None else f"{entity} {identifier} not found"
        super().__init__(status.HTTP_404_NOT_FOUND, message, entity=entity, identifier=identifier)


class DuplicateKeyError(BaseAppException):
    code = "duplicate_key"

    def __init__(self, entity: str, field: str, value: Any):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"{entity} with {field} '{value}' already exists",
            entity=entity,
            field=field,
            value=value,
        )


class InvalidTransitionError(BaseAppException):
    code = "invalid_transition"

    def __init__(self, entity: str, entity_id: Any, current: str, target: str, allowed: Iterable[str]):
        allowed = sorted(allowed)
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Cannot move {entity} {entity_id} from {current} to {target}. "
            f"Allowed: {', '.join(allowed) if allowed else 'none'}",
            entity=entity,
            entity_id=entity_id,
            current=current,
            target=target,
            allowed=allowed,
        )


class InvalidStateError(BaseAppException):
    code = "invalid_state"

    def __init__(self, entity: str, entity_id: Any, current: str, expected: Iterable[str]):
        expected = sorted(expected)
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"{entity} {entity_id} is {current}; expected one of: {', '.join(expected)}",
            entity=entity,
            entity_id=entity_id,
            current=current,
            expected=expected,
        )


class InvalidOperationError(BaseAppException):
    code = "invalid_operation"

    def __init__(self, message: str, **context: Any):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message, **context)


class InsufficientStockError(BaseAppException):
    code = "insufficient_stock"

    def __init__(
        self,
        requested: int,
        available: int,
        stock_record_id: Optional[int] = None,
        component_id: Optional[int] = None,
    ):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Insufficient stock available: requested {requested}, available {available}",
            requested=requested,
            available=available,
            stock_record_id=stock_record_id,
            component_id=component_id,
        )


class OverReceiptError(BaseAppException):
    code = "over_receipt"

    def __init__(self, line_id: int, ordered: int, already_received: int, attempted: int):
        super().__init__(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            f"Cannot receive {attempted} on line {line_id}: ordered {ordered}, "
            f"already received {already_received}",
            line_id=line_id,
            ordered=ordered,
            already_received=already_received,
            attempted=attempted,
        )


class ReferentialIntegrityError(BaseAppException):
    code = "referential_integrity"

    def __init__(self, entity: str, entity_id: Any, dependents: Dict[str, int], hint: Optional[str] = None):
        message = f"{entity} {entity_id} is still referenced"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(
            status.HTTP_409_CONFLICT,
            message,
            entity=entity,
            entity_id=entity_id,
            dependents=dependents,
        )


class ConcurrentUpdateError(BaseAppException):
    code = "concurrent_update"

    def __init__(self, entity: str, entity_id: Any = None):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"{entity} {entity_id} was modified concurrently, retry the operation",
            entity=entity,
            entity_id=entity_id,
        )
