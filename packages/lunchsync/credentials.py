"""Where the remote ledger API token comes from."""

from __future__ import annotations

import os
from typing import Protocol

from .errors import CredentialMissingError

TOKEN_ENV = "LUNCHSYNC_API_TOKEN"


class CredentialStore(Protocol):
    def api_token(self) -> str:
        """Return the bearer token or raise :class:`CredentialMissingError`."""
        ...


class EnvCredentialStore:
    """Reads the token from an environment variable (``.env`` is honored by the CLI)."""

    def __init__(self, variable: str = TOKEN_ENV) -> None:
        self.variable = variable

    def api_token(self) -> str:
        token = (os.getenv(self.variable) or "").strip()
        if not token:
            raise CredentialMissingError(f"{self.variable} is not set")
        return token


class StaticCredentialStore:
    def __init__(self, token: str | None) -> None:
        self.token = token

    def api_token(self) -> str:
        if not self.token:
            raise CredentialMissingError("no API token configured")
        return self.token


__all__ = ["TOKEN_ENV", "CredentialStore", "EnvCredentialStore", "StaticCredentialStore"]
