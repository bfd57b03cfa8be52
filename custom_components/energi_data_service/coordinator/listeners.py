"""Subscriber tracking and timer scheduling for the coordinator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.core import CALLBACK_TYPE, callback
from homeassistant.helpers.event import async_track_point_in_utc_time

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


class EnergiDataServiceListenerManager:
    """
    Tracks which components are consumed and owns the two timer handles.

    A component is consumed while at least one subscription includes it.
    Subscriptions come from entities (one per sensor) and are released with the
    returned remove callback.

    Timers:
    - Refresh timer: one-shot, re-armed after every refresh cycle
    - Hourly tick: one-shot at the next hour boundary, re-armed on every tick
    """

    def __init__(self, hass: HomeAssistant, log_prefix: str) -> None:
        """Initialize the listener manager."""
        self.hass = hass
        self._log_prefix = log_prefix

        # Subscription counts per component
        self._consumers: dict[str, int] = {}

        # Timer cancellation callbacks
        self._refresh_timer_cancel: CALLBACK_TYPE | None = None
        self._hourly_timer_cancel: CALLBACK_TYPE | None = None

    def _log(self, level: str, message: str, *args: object, **kwargs: object) -> None:
        """Log with coordinator-specific prefix."""
        prefixed_message = f"{self._log_prefix} {message}"
        getattr(_LOGGER, level)(prefixed_message, *args, **kwargs)

    @callback
    def async_add_component_listener(self, components: Iterable[str]) -> CALLBACK_TYPE:
        """
        Mark components as consumed until the returned callback is called.

        Returns:
            Callback that removes this subscription (idempotent)

        """
        subscribed = tuple(components)
        for component in subscribed:
            self._consumers[component] = self._consumers.get(component, 0) + 1

        removed = False

        def remove_listener() -> None:
            """Remove component subscription."""
            nonlocal removed
            if removed:
                return
            removed = True
            for component in subscribed:
                remaining = self._consumers.get(component, 0) - 1
                if remaining > 0:
                    self._consumers[component] = remaining
                else:
                    self._consumers.pop(component, None)

        return remove_listener

    def is_consumed(self, component: str) -> bool:
        """Return True if at least one subscriber consumes the component."""
        return self._consumers.get(component, 0) > 0

    @property
    def consumed_components(self) -> frozenset[str]:
        """Return all currently consumed components."""
        return frozenset(self._consumers)

    def schedule_refresh(
        self,
        handler_callback: Callable[[datetime], None],
        point_in_time: datetime,
    ) -> None:
        """Schedule the next refresh cycle, replacing any pending one."""
        self.cancel_refresh()
        self._refresh_timer_cancel = async_track_point_in_utc_time(self.hass, handler_callback, point_in_time)
        self._log("debug", "Refresh cycle scheduled at %s", point_in_time.isoformat())

    def schedule_hourly_tick(
        self,
        handler_callback: Callable[[datetime], None],
        point_in_time: datetime,
    ) -> None:
        """Schedule the next hourly republish tick, replacing any pending one."""
        if self._hourly_timer_cancel:
            self._hourly_timer_cancel()
            self._hourly_timer_cancel = None
        self._hourly_timer_cancel = async_track_point_in_utc_time(self.hass, handler_callback, point_in_time)
        self._log("debug", "Hourly price update scheduled at %s", point_in_time.isoformat())

    def cancel_refresh(self) -> None:
        """Cancel the pending refresh cycle, if any."""
        if self._refresh_timer_cancel:
            self._refresh_timer_cancel()
            self._refresh_timer_cancel = None

    def cancel_timers(self) -> None:
        """Cancel all scheduled timers."""
        self.cancel_refresh()
        if self._hourly_timer_cancel:
            self._hourly_timer_cancel()
            self._hourly_timer_cancel = None
