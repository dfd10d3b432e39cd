"""Runtime configuration.

Two immutable snapshots are read from the environment (after the CLI has
loaded ``.env`` via ``python-dotenv``):

- :class:`SyncConfig`: user-facing import preferences, read once per cycle.
- :class:`Settings`: process wiring (database, API endpoint, timeouts, retry).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .models import RetryPolicy

DEFAULT_API_URL = "https://dev.lunchmoney.app/v1"

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """User import preferences consulted by a sync cycle.

    Attributes
    ----------
    import_as_cleared:
        Push transactions with status ``cleared`` instead of ``uncleared``.
    put_status_in_notes:
        Send the source notes (``booked``/``pending``) to the remote ledger.
    categorize_incoming:
        Copy mapped remote categories onto incoming transactions.
    alert_after_import:
        Emit a notification summarizing the cycle.
    auto_import:
        Background triggers push pending records without user action.
    apply_rules, skip_duplicates, check_for_recurring, skip_balance_update:
        Flags forwarded to the remote ledger's batch insert.
    """

    import_as_cleared: bool = False
    put_status_in_notes: bool = False
    categorize_incoming: bool = True
    alert_after_import: bool = True
    auto_import: bool = False
    apply_rules: bool = False
    skip_duplicates: bool = False
    check_for_recurring: bool = False
    skip_balance_update: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> SyncConfig:
        """Read ``LUNCHSYNC_<FLAG>`` variables, falling back to defaults."""

        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            **{
                name: _env_bool(env, f"LUNCHSYNC_{name.upper()}", getattr(defaults, name))
                for name in cls.__dataclass_fields__
            }
        )


@dataclass(frozen=True, slots=True)
class Settings:
    """Process wiring shared by the CLI and embedding hosts."""

    database_url: str | None = None
    api_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0
    fetch_window_days: int = 7
    push_max_attempts: int = 5
    push_backoff_seconds: float = 2.0
    balance_concurrency: int = 4

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.fetch_window_days < 1:
            raise ValueError("fetch_window_days must be at least 1")
        if self.push_max_attempts < 0:
            raise ValueError("push_max_attempts must be >= 0 (0 = retry until cancelled)")
        if self.balance_concurrency < 1:
            raise ValueError("balance_concurrency must be at least 1")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            database_url=env.get("DATABASE_URL") or None,
            api_url=(env.get("LUNCHSYNC_API_URL") or defaults.api_url).rstrip("/"),
            request_timeout=_env_float(env, "LUNCHSYNC_TIMEOUT", defaults.request_timeout),
            fetch_window_days=_env_int(
                env, "LUNCHSYNC_FETCH_WINDOW_DAYS", defaults.fetch_window_days
            ),
            push_max_attempts=_env_int(
                env, "LUNCHSYNC_PUSH_MAX_ATTEMPTS", defaults.push_max_attempts
            ),
            push_backoff_seconds=_env_float(
                env, "LUNCHSYNC_PUSH_BACKOFF_SECONDS", defaults.push_backoff_seconds
            ),
            balance_concurrency=_env_int(
                env, "LUNCHSYNC_BALANCE_CONCURRENCY", defaults.balance_concurrency
            ),
        )

    def retry_policy(self) -> RetryPolicy:
        """Build the push retry policy; ``push_max_attempts == 0`` opts into unbounded."""

        if self.push_max_attempts == 0:
            return RetryPolicy.unbounded(backoff_seconds=self.push_backoff_seconds)
        return RetryPolicy(
            max_attempts=self.push_max_attempts,
            backoff_seconds=self.push_backoff_seconds,
        )


__all__ = ["DEFAULT_API_URL", "Settings", "SyncConfig"]
