"""MaintenanceRecord class for performed services, plus its form draft."""
from datetime import date
from typing import Optional, TYPE_CHECKING

from .calculations import project_next_service

if TYPE_CHECKING:
    from .car import Car
    from .maintenance_type import MaintenanceType


class MaintenanceRecord:
    """A record of maintenance performed. Immutable once stored."""

    def __init__(
            self,
            car_id: str,
            maintenance_type_id: str,
            date_performed: date,
            mileage_at_service: float,
            cost: float = 0,
            next_service_km: float = 0,
            next_service_date: Optional[date] = None,
            service_provider: Optional[str] = None,
            notes: Optional[str] = None,
            id: Optional[str] = None,
            maintenance_type: Optional["MaintenanceType"] = None,
            car: Optional["Car"] = None,
    ):
        self.id = id
        self.car_id = car_id
        self.maintenance_type_id = maintenance_type_id
        self.date_performed = date_performed
        self.mileage_at_service = mileage_at_service
        self.cost = cost
        self.next_service_km = next_service_km
        self.next_service_date = next_service_date
        self.service_provider = service_provider
        self.notes = notes
        # Embedded rows, present when fetched with joins
        self.maintenance_type = maintenance_type
        self.car = car

    @property
    def type_name(self) -> str:
        """Name of the service type, falling back to its id."""
        if self.maintenance_type is not None:
            return self.maintenance_type.name
        return self.maintenance_type_id

    @property
    def has_km_target(self) -> bool:
        return bool(self.next_service_km) and self.next_service_km > 0


class MaintenanceDraft:
    """
    Form state for a maintenance record being entered.

    Choosing a type projects the next service from its interval policy;
    the projected values stay editable until the draft is submitted.
    """

    def __init__(
            self,
            date_performed: Optional[date] = None,
            mileage_at_service: float = 0,
            maintenance_type_id: Optional[str] = None,
            cost: float = 0,
            service_provider: Optional[str] = None,
            notes: Optional[str] = None,
            next_service_km: Optional[float] = None,
            next_service_date: Optional[date] = None,
    ):
        self.date_performed = date_performed or date.today()
        self.mileage_at_service = mileage_at_service
        self.maintenance_type_id = maintenance_type_id
        self.cost = cost
        self.service_provider = service_provider
        self.notes = notes
        self.next_service_km = next_service_km
        self.next_service_date = next_service_date

    @classmethod
    def for_car(cls, car: "Car") -> "MaintenanceDraft":
        """Fresh draft starting at the car's current mileage and today."""
        return cls(mileage_at_service=car.mileage)

    @property
    def is_projected(self) -> bool:
        return self.next_service_km is not None or self.next_service_date is not None

    def select_type(self, maintenance_type: Optional["MaintenanceType"]) -> None:
        """Choose the service type and project the next service from it."""
        if maintenance_type is None:
            self.maintenance_type_id = None
            self.next_service_km = 0
            self.next_service_date = None
            return
        self.maintenance_type_id = maintenance_type.id
        self.next_service_km, self.next_service_date = project_next_service(
            maintenance_type, self.mileage_at_service, self.date_performed
        )

    def to_record(self, car_id: str) -> MaintenanceRecord:
        return MaintenanceRecord(
            car_id=car_id,
            maintenance_type_id=self.maintenance_type_id,
            date_performed=self.date_performed,
            mileage_at_service=self.mileage_at_service,
            cost=self.cost or 0,
            next_service_km=self.next_service_km or 0,
            next_service_date=self.next_service_date,
            service_provider=self.service_provider,
            notes=self.notes,
        )
