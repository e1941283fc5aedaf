"""Maintenance alerts across all of a user's cars."""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from .calculations import DUE_SOON_DAYS, DUE_SOON_KM, calculate_service_due
from .car import Car
from .maintenance_record import MaintenanceRecord
from .service_due import ServiceDue
from .status import Status


@dataclass
class DashboardStats:
    total_cars: int = 0
    cars_with_overdue: int = 0
    cars_with_upcoming: int = 0
    cars_up_to_date: int = 0


@dataclass
class Dashboard:
    overdue: List[ServiceDue] = field(default_factory=list)
    upcoming: List[ServiceDue] = field(default_factory=list)
    stats: DashboardStats = field(default_factory=DashboardStats)

    @property
    def has_alerts(self) -> bool:
        return bool(self.overdue or self.upcoming)


def build_dashboard(
    cars: Sequence[Car],
    records: Sequence[MaintenanceRecord],
    today: Optional[date] = None,
    soon_days: int = DUE_SOON_DAYS,
    soon_km: float = DUE_SOON_KM,
) -> Dashboard:
    """
    Split records into overdue and upcoming (due soon) alerts.

    Each record is checked against the current mileage of its car; records
    of cars not in `cars` are ignored. Record order is preserved.
    """
    today = today or date.today()
    cars_by_id = {car.id: car for car in cars}
    dashboard = Dashboard()

    for record in records:
        car = cars_by_id.get(record.car_id)
        if car is None:
            continue
        svc = calculate_service_due(record, car.mileage, today, soon_days, soon_km)
        if svc.status == Status.OVERDUE:
            dashboard.overdue.append(svc)
        elif svc.status == Status.DUE_SOON:
            dashboard.upcoming.append(svc)

    overdue_cars = {svc.record.car_id for svc in dashboard.overdue}
    upcoming_cars = {svc.record.car_id for svc in dashboard.upcoming}
    dashboard.stats = DashboardStats(
        total_cars=len(cars),
        cars_with_overdue=len(overdue_cars),
        cars_with_upcoming=len(upcoming_cars),
        cars_up_to_date=len(set(cars_by_id) - overdue_cars - upcoming_cars),
    )
    return dashboard
