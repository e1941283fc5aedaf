"""
Record stores: orchestrate backend calls for cars, maintenance and fuel.

Every mutation re-fetches and returns the affected list. Backend failures
raise BackendError with the backend's raw message; nothing is retried.
"""

import logging
from datetime import date
from typing import List, Optional

from .backend import Backend, Order, eq, in_
from .calculations import DUE_SOON_DAYS, DUE_SOON_KM, calculate_service_due
from .car import Car, CarDraft
from .dashboard import Dashboard, build_dashboard
from .errors import BackendError, MissingPrerequisiteError
from .fuel_economy import FuelStats, fuel_stats
from .fuel_record import FuelDraft, FuelRecord
from .identity import Session
from .maintenance_record import MaintenanceDraft, MaintenanceRecord
from .maintenance_type import MaintenanceType
from .rows import (
    car_draft_to_row,
    car_from_row,
    fuel_record_from_row,
    fuel_record_to_row,
    maintenance_record_from_row,
    maintenance_record_to_row,
    maintenance_type_from_row,
)
from .service_due import ServiceDue
from .validation import validate_form

logger = logging.getLogger(__name__)


class Store:
    """Shared plumbing: session checks and (data, error) unpacking."""

    def __init__(self, backend: Backend, session: Optional[Session] = None):
        self.backend = backend
        self.session = session

    def _require_session(self) -> Session:
        if self.session is None:
            raise MissingPrerequisiteError(
                "Você precisa estar autenticado", title="Sessão expirada"
            )
        return self.session

    @staticmethod
    def _require_car(car: Optional[Car]) -> Car:
        if car is None or car.id is None:
            raise MissingPrerequisiteError(
                "Selecione um carro primeiro", title="Nenhum carro selecionado"
            )
        return car

    @staticmethod
    def _check(result, title: str) -> List[dict]:
        data, error = result
        if error:
            raise BackendError(error, title=title)
        return data or []


class CarStore(Store):
    """The signed-in user's cars."""

    def list(self) -> List[Car]:
        session = self._require_session()
        rows = self._check(
            self.backend.select(
                "cars", [eq("user_id", session.user_id)], Order("created_at", ascending=False)
            ),
            "Erro ao carregar carros",
        )
        return [car_from_row(r) for r in rows]

    def get(self, car_id: str) -> Optional[Car]:
        for car in self.list():
            if car.id == car_id:
                return car
        return None

    def create(self, draft: CarDraft) -> List[Car]:
        session = self._require_session()
        row = car_draft_to_row(draft)
        validate_form("car", row)
        row["user_id"] = session.user_id
        self._check(self.backend.insert("cars", [row]), "Erro ao salvar carro")
        logger.info(f"Added car {draft.brand} {draft.model} for {session.email}")
        return self.list()

    def update(self, car_id: str, draft: CarDraft) -> List[Car]:
        session = self._require_session()
        row = car_draft_to_row(draft)
        validate_form("car", row)
        self._check(
            self.backend.update(
                "cars", row, [eq("id", car_id), eq("user_id", session.user_id)]
            ),
            "Erro ao salvar carro",
        )
        logger.info(f"Updated car {car_id}")
        return self.list()

    def delete(self, car_id: str) -> List[Car]:
        """Delete a car; its records go with it (backend cascade)."""
        session = self._require_session()
        self._check(
            self.backend.delete("cars", [eq("id", car_id), eq("user_id", session.user_id)]),
            "Erro ao excluir carro",
        )
        logger.info(f"Deleted car {car_id}")
        return self.list()


class MaintenanceStore(Store):
    """Maintenance types and the service records of a car."""

    def __init__(
        self,
        backend: Backend,
        session: Optional[Session] = None,
        soon_days: int = DUE_SOON_DAYS,
        soon_km: float = DUE_SOON_KM,
    ):
        super().__init__(backend, session)
        self.soon_days = soon_days
        self.soon_km = soon_km

    def list_types(self) -> List[MaintenanceType]:
        rows = self._check(
            self.backend.select("maintenance_types", order=Order("name")),
            "Erro ao carregar tipos de manutenção",
        )
        return [maintenance_type_from_row(r) for r in rows]

    def get_type(self, type_id: str) -> Optional[MaintenanceType]:
        rows = self._check(
            self.backend.select("maintenance_types", [eq("id", type_id)]),
            "Erro ao carregar tipos de manutenção",
        )
        return maintenance_type_from_row(rows[0]) if rows else None

    def list(self, car: Optional[Car]) -> List[MaintenanceRecord]:
        """Records of a car, newest first, with their maintenance type."""
        car = self._require_car(car)
        rows = self._check(
            self.backend.select(
                "maintenance_records",
                [eq("car_id", car.id)],
                Order("date_performed", ascending=False),
                embed=("maintenance_types",),
            ),
            "Erro ao carregar registros",
        )
        return [maintenance_record_from_row(r) for r in rows]

    def create(self, car: Optional[Car], draft: MaintenanceDraft) -> List[MaintenanceRecord]:
        """
        Store a performed service.

        The next service is projected from the type's interval policy now,
        unless the draft already carries a projection.
        """
        self._require_session()
        car = self._require_car(car)
        if not draft.maintenance_type_id:
            raise MissingPrerequisiteError(
                "Selecione o tipo de manutenção", title="Tipo não selecionado"
            )
        if not draft.is_projected:
            maintenance_type = self.get_type(draft.maintenance_type_id)
            if maintenance_type is None:
                raise MissingPrerequisiteError(
                    f"Tipo de manutenção desconhecido: {draft.maintenance_type_id}",
                    title="Tipo não selecionado",
                )
            draft.select_type(maintenance_type)

        row = maintenance_record_to_row(draft.to_record(car.id))
        validate_form("maintenance", row)
        self._check(
            self.backend.insert("maintenance_records", [row]),
            "Erro ao registrar manutenção",
        )
        logger.info(f"Logged {draft.maintenance_type_id} for car {car.id}")
        return self.list(car)

    def due_status(
        self, car: Car, records: List[MaintenanceRecord], today: Optional[date] = None
    ) -> List[ServiceDue]:
        return [
            calculate_service_due(r, car.mileage, today, self.soon_days, self.soon_km)
            for r in records
        ]

    def alerts(self, cars: List[Car], today: Optional[date] = None) -> Dashboard:
        """Overdue and upcoming services across all given cars."""
        if not cars:
            return build_dashboard([], [], today)
        rows = self._check(
            self.backend.select(
                "maintenance_records",
                [in_("car_id", [car.id for car in cars])],
                Order("next_service_date"),
                embed=("maintenance_types", "cars"),
            ),
            "Erro ao carregar alertas",
        )
        records = [maintenance_record_from_row(r) for r in rows]
        return build_dashboard(cars, records, today, self.soon_days, self.soon_km)


class FuelStore(Store):
    """Fill-ups of a car and their derived statistics."""

    def list(self, car: Optional[Car]) -> List[FuelRecord]:
        car = self._require_car(car)
        rows = self._check(
            self.backend.select(
                "fuel_records", [eq("car_id", car.id)], Order("date_filled", ascending=False)
            ),
            "Erro ao carregar registros",
        )
        return [fuel_record_from_row(r) for r in rows]

    def create(self, car: Optional[Car], draft: FuelDraft) -> List[FuelRecord]:
        self._require_session()
        car = self._require_car(car)
        row = fuel_record_to_row(draft.to_record(car.id))
        validate_form("fuel", row)
        self._check(
            self.backend.insert("fuel_records", [row]), "Erro ao registrar abastecimento"
        )
        logger.info(f"Logged {draft.liters} L fill-up for car {car.id}")
        return self.list(car)

    @staticmethod
    def stats(records: List[FuelRecord]) -> FuelStats:
        return fuel_stats(records)
