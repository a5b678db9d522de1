"""Retry utilities for operations that may lose a concurrent allocation race."""

from dataclasses import dataclass

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ordertrack.config import settings
from ordertrack.services.exceptions import ConflictError

logger = structlog.get_logger(__name__)


@dataclass
class ConflictRetryConfig:
    """Configuration for whole-operation retries with exponential backoff."""

    max_attempts: int = 5
    min_wait: float = 0.05
    max_wait: float = 1.0
    multiplier: float = 0.05

    @classmethod
    def from_settings(cls) -> "ConflictRetryConfig":
        return cls(
            max_attempts=settings.serial_allocation_max_attempts,
            min_wait=settings.serial_retry_min_wait,
            max_wait=settings.serial_retry_max_wait,
        )


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Allocation conflict, retrying",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


def get_conflict_retrying(config: ConflictRetryConfig | None = None) -> AsyncRetrying:
    """Get configured AsyncRetrying for ConflictError.

    Usage:
        async for attempt in get_conflict_retrying():
            with attempt:
                order = await self._create_once(...)

    The last ConflictError is re-raised once attempts are exhausted.
    """
    cfg = config or ConflictRetryConfig.from_settings()
    return AsyncRetrying(
        retry=retry_if_exception_type(ConflictError),
        stop=stop_after_attempt(cfg.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.multiplier,
            min=cfg.min_wait,
            max=cfg.max_wait,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )
