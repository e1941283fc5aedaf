"""
Fuel economy calculations over a car's fill-up history.

All functions expect records ordered by date, newest first, and treat
full-tank fill-ups as the boundaries of a consumption measurement.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .fuel_record import FuelRecord


@dataclass
class Consumption:
    """Consumption measured between two full-tank fill-ups."""

    consumption: float  # km per liter
    km_driven: float
    liters_used: float


@dataclass
class FuelStats:
    """Derived fuel statistics for one car."""

    latest: Optional[Consumption]
    average: Optional[float]
    total_spent: float
    fill_ups: int


def full_tank_records(records: Sequence[FuelRecord]) -> List[FuelRecord]:
    return [r for r in records if r.is_full_tank]


def latest_consumption(records: Sequence[FuelRecord]) -> Optional[Consumption]:
    """
    Consumption between the two most recent full-tank fill-ups.

    Uses the newer fill-up's liters. None when fewer than two full tanks
    exist or the data would give a non-positive distance or volume.
    """
    full = full_tank_records(records)[:2]
    if len(full) < 2:
        return None

    recent, previous = full
    km_driven = recent.mileage - previous.mileage
    liters_used = recent.liters
    if km_driven <= 0 or liters_used <= 0:
        return None

    return Consumption(
        consumption=km_driven / liters_used,
        km_driven=km_driven,
        liters_used=liters_used,
    )


def average_consumption(records: Sequence[FuelRecord]) -> Optional[float]:
    """
    Average consumption across consecutive full-tank pairs.

    Each full tank is paired with the next older full tank; pairs with a
    positive distance contribute their distance and the newer fill-up's
    liters. None when no pair qualifies.
    """
    full = full_tank_records(records)
    total_km = 0.0
    total_liters = 0.0
    valid_pairs = 0

    for current, older in zip(full, full[1:]):
        km_driven = current.mileage - older.mileage
        if km_driven > 0:
            total_km += km_driven
            total_liters += current.liters
            valid_pairs += 1

    if valid_pairs == 0 or total_liters <= 0:
        return None
    return total_km / total_liters


def total_spent(records: Sequence[FuelRecord]) -> float:
    """Sum of total_cost over all fill-ups."""
    return sum(r.total_cost for r in records)


def fuel_stats(records: Sequence[FuelRecord]) -> FuelStats:
    return FuelStats(
        latest=latest_consumption(records),
        average=average_consumption(records),
        total_spent=total_spent(records),
        fill_ups=len(records),
    )
