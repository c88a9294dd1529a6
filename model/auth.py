# model/auth.py
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthContext:
    """Server-derived tenant scope; never taken from a request body."""

    tenant_id: str
