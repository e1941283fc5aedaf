"""Conversion between backend rows (plain dicts) and model objects."""

from datetime import date
from typing import Any, Dict, Optional, Union

from .car import Car, CarDraft
from .fuel_record import DEFAULT_FUEL_TYPE, FuelRecord
from .maintenance_record import MaintenanceRecord
from .maintenance_type import MaintenanceType


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Accept ISO strings (possibly with a time part), dates, or empty values."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values for cleaner rows."""
    return {k: v for k, v in d.items() if v is not None}


def car_from_row(row: Dict[str, Any]) -> Car:
    return Car(
        brand=row["brand"],
        model=row["model"],
        year=row["year"],
        mileage=row.get("mileage") or 0,
        license_plate=row.get("license_plate") or None,
        color=row.get("color") or None,
        engine_type=row.get("engine_type") or None,
        id=row.get("id"),
        user_id=row.get("user_id"),
        created_at=row.get("created_at"),
    )


def car_draft_to_row(draft: CarDraft) -> Dict[str, Any]:
    return {
        "brand": draft.brand,
        "model": draft.model,
        "year": draft.year,
        "mileage": draft.mileage,
        "license_plate": draft.license_plate or None,
        "color": draft.color or None,
        "engine_type": draft.engine_type or None,
    }


def maintenance_type_from_row(row: Dict[str, Any]) -> MaintenanceType:
    return MaintenanceType(
        id=row["id"],
        name=row["name"],
        category=row.get("category"),
        default_interval_km=row.get("default_interval_km"),
        default_interval_months=row.get("default_interval_months"),
        description=row.get("description"),
    )


def maintenance_record_from_row(row: Dict[str, Any]) -> MaintenanceRecord:
    """Parse a record row, including embedded type/car rows when joined."""
    embedded_type = row.get("maintenance_types")
    embedded_car = row.get("cars")
    return MaintenanceRecord(
        car_id=row["car_id"],
        maintenance_type_id=row["maintenance_type_id"],
        date_performed=parse_date(row["date_performed"]),
        mileage_at_service=row.get("mileage_at_service") or 0,
        cost=row.get("cost") or 0,
        next_service_km=row.get("next_service_km") or 0,
        next_service_date=parse_date(row.get("next_service_date")),
        service_provider=row.get("service_provider") or None,
        notes=row.get("notes") or None,
        id=row.get("id"),
        maintenance_type=(
            maintenance_type_from_row(embedded_type) if embedded_type else None
        ),
        car=car_from_row(embedded_car) if embedded_car else None,
    )


def maintenance_record_to_row(record: MaintenanceRecord) -> Dict[str, Any]:
    return _compact(
        {
            "car_id": record.car_id,
            "maintenance_type_id": record.maintenance_type_id,
            "date_performed": format_date(record.date_performed),
            "mileage_at_service": record.mileage_at_service,
            "cost": record.cost,
            "next_service_km": record.next_service_km,
            "next_service_date": format_date(record.next_service_date),
            "service_provider": record.service_provider,
            "notes": record.notes,
        }
    )


def fuel_record_from_row(row: Dict[str, Any]) -> FuelRecord:
    is_full_tank = row.get("is_full_tank")
    return FuelRecord(
        car_id=row["car_id"],
        date_filled=parse_date(row["date_filled"]),
        mileage=row.get("mileage") or 0,
        liters=row.get("liters") or 0,
        cost_per_liter=row.get("cost_per_liter") or 0,
        total_cost=row.get("total_cost") or 0,
        fuel_type=row.get("fuel_type") or DEFAULT_FUEL_TYPE,
        gas_station=row.get("gas_station") or None,
        is_full_tank=True if is_full_tank is None else bool(is_full_tank),
        notes=row.get("notes") or None,
        id=row.get("id"),
    )


def fuel_record_to_row(record: FuelRecord) -> Dict[str, Any]:
    return _compact(
        {
            "car_id": record.car_id,
            "date_filled": format_date(record.date_filled),
            "mileage": record.mileage,
            "fuel_type": record.fuel_type,
            "liters": record.liters,
            "cost_per_liter": record.cost_per_liter,
            "total_cost": record.total_cost,
            "gas_station": record.gas_station,
            "is_full_tank": record.is_full_tank,
            "notes": record.notes,
        }
    )
