"""Pure strength and nutrition arithmetic.

Nothing here touches a session or storage, so every function can be called
from the engine, the HTTP layer, or tests alike.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

STANDARD_PLATES_KG: tuple[float, ...] = (25, 20, 15, 10, 5, 2.5, 1.25)

# Float slack so that e.g. 0.3 / 0.1 still counts as three plates
_EPSILON = 1e-9


def estimate_1rm(weight: float | None, reps: int | None) -> float:
    """Epley estimate: ``weight * (1 + reps / 30)``, or ``weight`` for a single.

    Missing or non-positive inputs give no estimate (0.0).
    """
    if not weight or not reps or weight <= 0 or reps <= 0:
        return 0.0
    if reps == 1:
        return float(weight)
    return weight * (1 + reps / 30)


def set_volume(weight: float | None, reps: int | None) -> float:
    return (weight or 0) * (reps or 0)


@dataclass(slots=True)
class PlateCount:
    weight: float
    count: int


@dataclass(slots=True)
class PlateBreakdown:
    per_side: list[PlateCount] = field(default_factory=list)
    remainder: float = 0.0

    @property
    def loaded_weight(self) -> float:
        """Weight on both sides together, bar excluded."""
        return 2 * sum(p.weight * p.count for p in self.per_side)


def calculate_plates(
    total: float,
    bar: float = 20.0,
    plates: Iterable[float] = STANDARD_PLATES_KG,
) -> PlateBreakdown:
    """Greedy per-side plate breakdown for ``total`` on a ``bar``.

    Plates are consumed largest first. That is only exact because the standard
    set is canonical, and the output is expected to match it, so do not swap
    in an optimal solver. Whatever cannot be loaded per side is returned as
    ``remainder`` rounded to two decimals.
    """
    remaining = (total - bar) / 2
    if remaining <= 0:
        return PlateBreakdown()

    per_side: list[PlateCount] = []
    for plate in sorted(plates, reverse=True):
        count = math.floor(remaining / plate + _EPSILON)
        if count > 0:
            per_side.append(PlateCount(weight=plate, count=count))
            remaining -= count * plate

    remainder = round(remaining, 2)
    return PlateBreakdown(per_side=per_side, remainder=max(remainder, 0.0))


MACRO_KEYS = ("kcal", "protein_g", "carbs_g", "fat_g")


def sum_macros(items: Iterable[Mapping | object]) -> dict[str, float]:
    totals = dict.fromkeys(MACRO_KEYS, 0.0)
    for item in items:
        for key in MACRO_KEYS:
            value = item.get(key) if isinstance(item, Mapping) else getattr(item, key, None)
            totals[key] += value or 0
    return totals
