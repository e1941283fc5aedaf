"""Helper functions for next-service projection and due-status checks."""

from datetime import date
from dateutil.relativedelta import relativedelta
from typing import Optional, Tuple, TYPE_CHECKING

from .service_due import ServiceDue
from .status import Status

if TYPE_CHECKING:
    from .maintenance_record import MaintenanceRecord
    from .maintenance_type import MaintenanceType

DUE_SOON_DAYS = 30
DUE_SOON_KM = 1000


def calc_next_service_km(mileage: float, interval_km: Optional[float]) -> float:
    """Next service mileage: mileage + interval, or 0 (no km target)."""
    if not interval_km:
        return 0
    return mileage + interval_km


def calc_next_service_date(
    service_date: Optional[date], interval_months: Optional[float]
) -> Optional[date]:
    """
    Next service date: service date + interval calendar months.

    Month overflow clamps to the last valid day (Jan 31 + 1 month = Feb 28/29).
    """
    if not interval_months or service_date is None:
        return None
    months = int(interval_months)
    days = int((interval_months - months) * 30)
    return service_date + relativedelta(months=months, days=days)


def project_next_service(
    maintenance_type: "MaintenanceType", mileage: float, service_date: date
) -> Tuple[float, Optional[date]]:
    """Project (next_service_km, next_service_date) from a type's interval policy."""
    return (
        calc_next_service_km(mileage, maintenance_type.default_interval_km),
        calc_next_service_date(service_date, maintenance_type.default_interval_months),
    )


def days_until(target: Optional[date], today: date) -> Optional[int]:
    """Whole days from today to target (negative when target is past)."""
    if target is None:
        return None
    return (target - today).days


def check_due_status(
    days_remaining: Optional[int],
    km_remaining: Optional[float],
    soon_days: int = DUE_SOON_DAYS,
    soon_km: float = DUE_SOON_KM,
) -> Status:
    """
    Classify a service by its remaining days and km.

    None means the record has no target of that kind. A target reached
    today counts as overdue.
    """
    if days_remaining is not None and days_remaining <= 0:
        return Status.OVERDUE
    if km_remaining is not None and km_remaining <= 0:
        return Status.OVERDUE
    if days_remaining is not None and days_remaining <= soon_days:
        return Status.DUE_SOON
    if km_remaining is not None and km_remaining <= soon_km:
        return Status.DUE_SOON
    return Status.OK


def calculate_service_due(
    record: "MaintenanceRecord",
    current_mileage: float,
    today: Optional[date] = None,
    soon_days: int = DUE_SOON_DAYS,
    soon_km: float = DUE_SOON_KM,
) -> ServiceDue:
    """
    Calculate due status for a maintenance record.

    Logic:
    - next_service_km of 0 (or None) means no km target
    - Overdue when the date is past or the km target is reached
    - Due soon within soon_days days or soon_km km
    """
    today = today or date.today()
    days_remaining = days_until(record.next_service_date, today)
    km_remaining = None
    if record.next_service_km and record.next_service_km > 0:
        km_remaining = record.next_service_km - current_mileage

    return ServiceDue(
        record=record,
        status=check_due_status(days_remaining, km_remaining, soon_days, soon_km),
        days_remaining=days_remaining,
        km_remaining=km_remaining,
    )


def format_km(km: Optional[float]) -> str:
    """Format a distance with pt-BR thousands grouping (1.500)."""
    if km is None:
        return "-"
    return f"{km:,.0f}".replace(",", ".")


def format_time_until_service(svc: ServiceDue) -> str:
    """Format remaining time/distance, e.g. '12 dias ou 500 km' or '3 dias atrasado'."""
    parts = []
    if svc.days_remaining is not None:
        if svc.days_remaining <= 0:
            parts.append(f"{abs(svc.days_remaining)} dias atrasado")
        else:
            parts.append(f"{svc.days_remaining} dias")
    if svc.km_remaining is not None:
        if svc.km_remaining <= 0:
            parts.append(f"{format_km(abs(svc.km_remaining))} km atrasado")
        else:
            parts.append(f"{format_km(svc.km_remaining)} km")
    return " ou ".join(parts)
