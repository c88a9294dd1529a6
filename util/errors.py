# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, err: ErrorMessage) -> "AppError":
        return cls(err.value.message, err.value.http_status)


class DispatchFailed(AppError):
    """Every attempted engine failed to persist an evaluation."""

    def __init__(self) -> None:
        info = ErrorMessage.ALL_ENGINES_FAILED.value
        super().__init__(info.message, info.http_status)


class InvalidTransition(AppError):
    def __init__(self, current: str, target: str) -> None:
        info = ErrorMessage.INVALID_TRANSITION.value
        super().__init__(info.message, info.http_status)
        self.current = current
        self.target = target
