# util/types.py
from typing import Literal, TypedDict


# Flow: Narrow types for provider request bodies.
ChatRole = Literal["system", "user", "assistant"]


class ChatMessage(TypedDict):
    role: ChatRole
    content: str


class CooldownPayload(TypedDict):
    ok: bool
    error: str
    message: str
    retryAfterSeconds: int
