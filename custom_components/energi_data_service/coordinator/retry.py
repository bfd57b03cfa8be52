"""
Retry policies for the refresh cycle.

After every refresh cycle the coordinator classifies the outcome into one of
these policies and asks it for the delay until the next cycle:

- Initial: short fixed delay, only before the first successful bootstrap
- FixedDailyAnchor: wait until the next occurrence of a wall-clock time in a zone
  (spot prices at 13:00 CET, tariffs after local midnight)
- ExpectedDataMissing: tomorrow's spot prices are expected but not yet cached.
  Before the publication anchor the delay is the remaining time until the anchor,
  so it shrinks as the anchor approaches. After the anchor it backs off
  exponentially until the data shows up.
- FromFailure: derived from the error kind. Communication, parse and empty-data
  errors back off exponentially up to a ceiling. Configuration errors get a long
  fixed delay so a later reconfiguration is still picked up.

Policies compare by kind and parameters only. Back-off bookkeeping (attempt
counters) is excluded from equality, so the coordinator can keep the running
instance when the new classification is equal and the back-off keeps growing.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import time, timedelta
from typing import TYPE_CHECKING, Any

from custom_components.energi_data_service.api.exceptions import (
    EnergiDataServiceApiClientCommunicationError,
    EnergiDataServiceConfigurationError,
)

from .constants import (
    CONFIGURATION_ERROR_RETRY_DELAY,
    EXPECTED_DATA_BACKOFF_MAXIMUM,
    EXPECTED_DATA_BACKOFF_MINIMUM,
    FAILURE_BACKOFF_MAXIMUM,
    FAILURE_BACKOFF_MINIMUM,
    HTTP_TOO_MANY_REQUESTS,
    INITIAL_RETRY_DELAY,
    MINIMUM_RETRY_DELAY,
    RATE_LIMIT_BACKOFF_MINIMUM,
    RETRY_JITTER,
)

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from .time_service import EnergiDataServiceTimeService


def _clamp(delay: timedelta) -> timedelta:
    """Never schedule a zero or negative delay."""
    return max(delay, MINIMUM_RETRY_DELAY)


class RetryPolicy(ABC):
    """Base class for retry policies."""

    kind: str = "unknown"

    @abstractmethod
    def get_duration(self, time_service: EnergiDataServiceTimeService) -> timedelta:
        """Return the delay until the next refresh cycle."""

    def describe(self) -> dict[str, Any]:
        """Return a serializable description for diagnostics."""
        return {"kind": self.kind}


@dataclass(eq=True)
class InitialRetryPolicy(RetryPolicy):
    """Short fixed delay used before the first successful bootstrap."""

    kind = "initial"

    delay: timedelta = INITIAL_RETRY_DELAY

    def get_duration(self, time_service: EnergiDataServiceTimeService) -> timedelta:  # noqa: ARG002
        """Return the fixed delay."""
        return _clamp(self.delay)


@dataclass(eq=True)
class FixedDailyAnchorRetryPolicy(RetryPolicy):
    """Wait until the next occurrence of a wall-clock time in a time zone."""

    kind = "fixed_daily_anchor"

    local_time: time
    tz: ZoneInfo

    def get_duration(self, time_service: EnergiDataServiceTimeService) -> timedelta:
        """Return the time remaining until the next anchor occurrence."""
        next_anchor = time_service.next_occurrence(self.local_time, self.tz)
        return _clamp(next_anchor - time_service.now())

    def describe(self) -> dict[str, Any]:
        """Return kind and anchor."""
        return {"kind": self.kind, "local_time": self.local_time.isoformat(), "tz": str(self.tz)}


@dataclass(eq=True)
class ExponentialBackoff:
    """
    Growing delay with optional jitter.

    Each call to next_delay counts as one attempt. The attempt counter is not
    part of equality.
    """

    minimum: timedelta
    maximum: timedelta
    factor: float = 2.0
    jitter: float = 0.0
    attempts: int = field(default=0, compare=False)
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def next_delay(self) -> timedelta:
        """Return the delay for the next attempt and count the attempt."""
        ceiling = self.maximum.total_seconds()
        seconds = self.minimum.total_seconds()
        for _ in range(self.attempts):
            if seconds >= ceiling:
                break
            seconds *= self.factor
        if self.jitter:
            seconds *= self.rng.uniform(1 - self.jitter, 1 + self.jitter)
        # The ceiling holds after jitter
        seconds = min(seconds, ceiling)
        self.attempts += 1
        return _clamp(timedelta(seconds=seconds))


@dataclass(eq=True)
class ExpectedDataMissingRetryPolicy(RetryPolicy):
    """Tomorrow's data is expected around an anchor time but not cached yet."""

    kind = "expected_data_missing"

    local_time: time
    tz: ZoneInfo
    backoff: ExponentialBackoff = field(
        default_factory=lambda: ExponentialBackoff(
            minimum=EXPECTED_DATA_BACKOFF_MINIMUM,
            maximum=EXPECTED_DATA_BACKOFF_MAXIMUM,
            jitter=RETRY_JITTER,
        ),
        compare=False,
    )

    def get_duration(self, time_service: EnergiDataServiceTimeService) -> timedelta:
        """Return time until the anchor, or a back-off delay once the anchor has passed."""
        today_anchor = time_service.today_occurrence(self.local_time, self.tz)
        remaining = today_anchor - time_service.now()
        if remaining > timedelta(0):
            return _clamp(remaining)
        return self.backoff.next_delay()

    def describe(self) -> dict[str, Any]:
        """Return kind, anchor and attempt count."""
        return {
            "kind": self.kind,
            "local_time": self.local_time.isoformat(),
            "tz": str(self.tz),
            "attempts": self.backoff.attempts,
        }


@dataclass(eq=True)
class FromFailureRetryPolicy(RetryPolicy):
    """Back-off derived from the kind of failure."""

    kind = "from_failure"

    error_kind: str
    minimum: timedelta
    maximum: timedelta
    backoff: ExponentialBackoff | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Create the back-off state for this classification."""
        if self.backoff is None:
            self.backoff = ExponentialBackoff(minimum=self.minimum, maximum=self.maximum, jitter=RETRY_JITTER)

    def get_duration(self, time_service: EnergiDataServiceTimeService) -> timedelta:  # noqa: ARG002
        """Return the next back-off delay."""
        if self.minimum == self.maximum:
            return _clamp(self.minimum)
        return self.backoff.next_delay()

    def describe(self) -> dict[str, Any]:
        """Return kind, error kind and attempt count."""
        return {
            "kind": self.kind,
            "error_kind": self.error_kind,
            "attempts": self.backoff.attempts if self.backoff else 0,
        }


def initial() -> RetryPolicy:
    """Return the policy used before the first successful refresh."""
    return InitialRetryPolicy()


def at_fixed_time(local_time: time, tz: ZoneInfo) -> RetryPolicy:
    """Return a policy that waits for a daily wall-clock time."""
    return FixedDailyAnchorRetryPolicy(local_time=local_time, tz=tz)


def when_expected_spot_price_data_missing(local_time: time, tz: ZoneInfo) -> RetryPolicy:
    """Return a policy for spot prices that lack tomorrow's lookahead."""
    return ExpectedDataMissingRetryPolicy(local_time=local_time, tz=tz)


def from_error(error: Exception) -> RetryPolicy:
    """
    Classify a refresh failure into a retry policy.

    - Configuration errors: long fixed delay
    - HTTP 429: exponential back-off starting higher
    - Everything else (communication, parse, empty data, unexpected): exponential back-off
    """
    if isinstance(error, EnergiDataServiceConfigurationError):
        return FromFailureRetryPolicy(
            error_kind="configuration",
            minimum=CONFIGURATION_ERROR_RETRY_DELAY,
            maximum=CONFIGURATION_ERROR_RETRY_DELAY,
        )
    if (
        isinstance(error, EnergiDataServiceApiClientCommunicationError)
        and error.http_status == HTTP_TOO_MANY_REQUESTS
    ):
        return FromFailureRetryPolicy(
            error_kind="rate_limit",
            minimum=RATE_LIMIT_BACKOFF_MINIMUM,
            maximum=FAILURE_BACKOFF_MAXIMUM,
        )
    return FromFailureRetryPolicy(
        error_kind="transient",
        minimum=FAILURE_BACKOFF_MINIMUM,
        maximum=FAILURE_BACKOFF_MAXIMUM,
    )
