"""Learning from watering history.

Two estimators over the same window of the plant's newest log entries:

- ``average_interval``: arithmetic mean of the observed gaps.
- ``smoothed_interval``: exponential smoothing over the most recent gaps, so a
  change in the owner's rhythm shows up after a few waterings.

Both drop non-positive gaps (same-day duplicates, out-of-order rows) and return
None when there is not enough history.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol, Sequence

from plantcare.core.config import get_settings
from plantcare.plants.models import Plant, WateringLogEntry

DEFAULT_WINDOW = 20
DEFAULT_LAST_N = 5
DEFAULT_ALPHA = 0.5


class WateringLogSource(Protocol):
    async def latest(self, plant_id: str, limit: int = DEFAULT_WINDOW) -> List[WateringLogEntry]:
        ...


def _dates(entries: Sequence[WateringLogEntry], window: int) -> List[date]:
    return [e.watered_at for e in list(entries)[:window]]


def average_interval(
    entries: Sequence[WateringLogEntry],
    *,
    window: int = DEFAULT_WINDOW,
) -> Optional[float]:
    """Mean gap in days over the newest ``window`` entries (newest first)."""
    dates = _dates(entries, window)
    if len(dates) < 2:
        return None
    gaps = [(dates[i] - dates[i + 1]).days for i in range(len(dates) - 1)]
    gaps = [g for g in gaps if g > 0]
    if not gaps:
        return None
    return sum(gaps) / len(gaps)


def smoothed_interval(
    entries: Sequence[WateringLogEntry],
    *,
    last_n: int = DEFAULT_LAST_N,
    alpha: float = DEFAULT_ALPHA,
    window: int = DEFAULT_WINDOW,
) -> Optional[float]:
    """
    Exponentially smoothed gap over the last ``last_n`` gaps.

    Gaps are taken oldest-to-newest; the oldest kept gap seeds the smoother and
    each newer one is folded in with ``s = alpha * gap + (1 - alpha) * s``.
    """
    dates = _dates(entries, window)
    if len(dates) < 2:
        return None
    oldest_first = list(reversed(dates))
    gaps = [(oldest_first[i + 1] - oldest_first[i]).days for i in range(len(oldest_first) - 1)]
    gaps = [g for g in gaps if g > 0]
    recent = gaps[-max(1, last_n):]
    if len(recent) < 2:
        return None
    s = float(recent[0])
    for gap in recent[1:]:
        s = alpha * gap + (1 - alpha) * s
    return s


class LearningService:
    """Reads a plant's log and applies the configured estimators."""

    def __init__(
        self,
        logs: WateringLogSource,
        *,
        last_n: Optional[int] = None,
        alpha: Optional[float] = None,
        window: Optional[int] = None,
    ):
        settings = get_settings()
        self.logs = logs
        self.last_n = last_n if last_n is not None else settings.LEARNING_LAST_N
        self.alpha = alpha if alpha is not None else settings.LEARNING_ALPHA
        self.window = window if window is not None else settings.LEARNING_WINDOW

    async def _entries(self, plant: Plant) -> List[WateringLogEntry]:
        if not plant.id:
            return []
        return await self.logs.latest(plant.id, limit=self.window)

    async def get_average_interval(self, plant: Plant) -> Optional[float]:
        return average_interval(await self._entries(plant), window=self.window)

    async def get_smoothed_interval(self, plant: Plant) -> Optional[float]:
        return smoothed_interval(
            await self._entries(plant),
            last_n=self.last_n,
            alpha=self.alpha,
            window=self.window,
        )
