# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    UNAUTHORIZED = ErrorInfo("Unauthorized", status.HTTP_401_UNAUTHORIZED)
    INVALID_INPUT = ErrorInfo("Invalid input", status.HTTP_400_BAD_REQUEST)
    ENTITY_NOT_FOUND = ErrorInfo(
        "Location not found or access denied", status.HTTP_404_NOT_FOUND
    )
    HALLUCINATION_NOT_FOUND = ErrorInfo(
        "Hallucination not found or access denied", status.HTTP_404_NOT_FOUND
    )
    ALL_ENGINES_FAILED = ErrorInfo(
        "All engine evaluations failed", status.HTTP_502_BAD_GATEWAY
    )
    INVALID_TRANSITION = ErrorInfo(
        "This status change is not allowed", status.HTTP_409_CONFLICT
    )
    COOLDOWN_ACTIVE = ErrorInfo(
        "Verification cooldown active. AI models need 24 hours to update.",
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
