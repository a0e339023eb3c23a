"""
Energy Budget
=============

Admission control for cycles. The orchestrator only depends on the
``EnergyGate`` protocol; ``EnergyBudget`` is the in-memory implementation
shipped with the package.
"""

import asyncio
import logging
import time
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger("CognitiveCycle")


@runtime_checkable
class EnergyGate(Protocol):
    """What the orchestrator needs from an energy subsystem."""

    @property
    def level(self) -> float: ...

    def is_sufficient(self, amount: float) -> bool: ...

    def consume(self, amount: float) -> bool: ...

    async def wait_until_available(self) -> None: ...


class EnergyBudget:
    """
    Rechargeable energy pool.

    Recharge is computed lazily from the clock on every read, so no
    background task is needed.

    Example:
        >>> budget = EnergyBudget(capacity=100, level=40, recharge_per_second=0.5)
        >>> budget.consume(12)
        True
    """

    def __init__(
        self,
        capacity: float = 100.0,
        level: float = 100.0,
        recharge_per_second: float = 0.0,
        available_threshold: float = 25.0,
        poll_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep=asyncio.sleep,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._level = max(0.0, min(capacity, level))
        self.recharge_per_second = recharge_per_second
        self.available_threshold = available_threshold
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._last_tick = clock()

    def _recharge(self) -> None:
        now = self._clock()
        elapsed = now - self._last_tick
        self._last_tick = now
        if elapsed > 0 and self.recharge_per_second > 0:
            self._level = min(self.capacity, self._level + elapsed * self.recharge_per_second)

    @property
    def level(self) -> float:
        self._recharge()
        return self._level

    @property
    def level_ratio(self) -> float:
        return self.level / self.capacity

    def is_sufficient(self, amount: float) -> bool:
        return self.level >= amount

    def consume(self, amount: float) -> bool:
        """Take ``amount`` from the pool; False (and nothing taken) when short."""
        self._recharge()
        if self._level < amount:
            logger.warning(f"⚠️ [Energy] Insufficient energy: need {amount:.1f}, have {self._level:.1f}")
            return False
        self._level -= amount
        return True

    def restore(self, amount: float) -> None:
        self._recharge()
        self._level = min(self.capacity, self._level + amount)

    async def wait_until_available(self) -> None:
        """
        Sleep until the level reaches the availability threshold.

        Raises:
            RuntimeError: When the pool cannot recharge and is below threshold
        """
        while not self.is_sufficient(self.available_threshold):
            if self.recharge_per_second <= 0:
                raise RuntimeError(
                    f"Energy {self._level:.1f} below {self.available_threshold} and no recharge configured"
                )
            logger.info(f"🔋 [Energy] Waiting for recharge ({self._level:.1f}/{self.available_threshold})")
            await self._sleep(self.poll_interval)
