"""Reconnect delay policy for the MQTT supervisor."""
from __future__ import annotations


class ReconnectBackoff:
    """Exponential reconnect delay: 1s, 2s, 4s … capped at 30s.

    A session that stayed up for at least ``healthy_after`` seconds is
    treated as healthy, so the delay after it drops starts over at
    ``initial``.
    """

    def __init__(
        self,
        initial: float = 1.0,
        maximum: float = 30.0,
        healthy_after: float = 60.0,
    ) -> None:
        self.initial = initial
        self.maximum = maximum
        self.healthy_after = healthy_after
        self._current = initial

    @property
    def current(self) -> float:
        return self._current

    def next_delay(self, session_lifetime: float = 0.0) -> float:
        """Delay before the next attempt, given how long the last session lasted."""
        if session_lifetime >= self.healthy_after:
            self._current = self.initial
        delay = self._current
        self._current = min(self._current * 2, self.maximum)
        return delay

    def reset(self) -> None:
        self._current = self.initial
