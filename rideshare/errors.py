"""Error taxonomy and the structured result returned by every operation.

Domain objects raise `DomainError` subclasses. Operations are wrapped with
`@action(...)`, which converts those errors (and pydantic validation errors)
into a failed `ActionResult`. Anything else is logged with its traceback and
reduced to a generic message.
"""
import functools
import logging
from enum import Enum
from typing import Callable, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, ValidationError

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    UNEXPECTED = "unexpected"


class DomainError(ValueError):
    kind = ErrorKind.VALIDATION


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND


class StateConflictError(DomainError):
    kind = ErrorKind.CONFLICT


class PermissionDeniedError(DomainError):
    kind = ErrorKind.FORBIDDEN


class ActionResult(BaseModel):
    success: bool
    message: str
    trip_id: Optional[str] = None
    participant_id: Optional[str] = None
    error: Optional[ErrorKind] = None

    @staticmethod
    def ok(message: str, **ids) -> "ActionResult":
        return ActionResult(success=True, message=message, **ids)

    @staticmethod
    def fail(kind: ErrorKind, message: str) -> "ActionResult":
        return ActionResult(success=False, message=message, error=kind)


def format_validation_error(exc: ValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = err.get("msg", "Invalid value")
        # field_validator errors come through as "Value error, <message>"
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return ", ".join(messages)


def action(event: str) -> Callable:
    """Make an operation total: it always returns an `ActionResult`."""
    def decorator(func: Callable[..., ActionResult]) -> Callable[..., ActionResult]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return func(*args, **kwargs)
            except ValidationError as e:
                message = format_validation_error(e)
                logging.info("%s rejected kind=validation message=%s", event, message)
                return ActionResult.fail(ErrorKind.VALIDATION, message)
            except DomainError as e:
                logging.info("%s rejected kind=%s message=%s", event, e.kind.value, e)
                return ActionResult.fail(e.kind, str(e))
            except Exception:
                logging.exception("%s failed", event)
                return ActionResult.fail(ErrorKind.UNEXPECTED, GENERIC_ERROR_MESSAGE)
        return wrapper
    return decorator


_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_failure(result: ActionResult) -> ActionResult:
    if not result.success:
        raise HTTPException(
            status_code=_STATUS_CODES[result.error or ErrorKind.UNEXPECTED],
            detail=result.message
        )
    return result
