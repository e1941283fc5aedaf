#!/usr/bin/env python3
"""Tests for MaintenanceRecord and MaintenanceDraft."""

from datetime import date

from kmcars import Car, MaintenanceDraft, MaintenanceRecord, MaintenanceType


OIL = MaintenanceType(
    "oleo-motor", "Troca de óleo", default_interval_km=10000, default_interval_months=6
)


class TestMaintenanceRecord:
    """Tests for MaintenanceRecord class."""

    def test_type_name_from_embedded_type(self):
        record = MaintenanceRecord("c1", "oleo-motor", date(2024, 1, 1), 50000, maintenance_type=OIL)
        assert record.type_name == "Troca de óleo"

    def test_type_name_falls_back_to_id(self):
        record = MaintenanceRecord("c1", "oleo-motor", date(2024, 1, 1), 50000)
        assert record.type_name == "oleo-motor"

    def test_has_km_target(self):
        assert MaintenanceRecord("c1", "t", date(2024, 1, 1), 0, next_service_km=60000).has_km_target
        assert not MaintenanceRecord("c1", "t", date(2024, 1, 1), 0).has_km_target


class TestMaintenanceDraft:
    """Tests for MaintenanceDraft class."""

    def test_defaults_to_today(self):
        draft = MaintenanceDraft()
        assert draft.date_performed == date.today()
        assert not draft.is_projected

    def test_for_car_uses_current_mileage(self):
        car = Car("Toyota", "Corolla", 2020, mileage=41000, id="c1")
        assert MaintenanceDraft.for_car(car).mileage_at_service == 41000

    def test_select_type_projects_next_service(self):
        draft = MaintenanceDraft(date_performed=date(2024, 1, 15), mileage_at_service=50000)
        draft.select_type(OIL)
        assert draft.maintenance_type_id == "oleo-motor"
        assert draft.next_service_km == 60000
        assert draft.next_service_date == date(2024, 7, 15)
        assert draft.is_projected

    def test_select_type_without_km_interval(self):
        """A time-only type leaves no km target."""
        battery = MaintenanceType("bateria", "Bateria", default_interval_months=36)
        draft = MaintenanceDraft(date_performed=date(2024, 1, 15), mileage_at_service=50000)
        draft.select_type(battery)
        assert draft.next_service_km == 0
        assert draft.next_service_date == date(2027, 1, 15)

    def test_clearing_type_clears_projection(self):
        draft = MaintenanceDraft(date_performed=date(2024, 1, 15), mileage_at_service=50000)
        draft.select_type(OIL)
        draft.select_type(None)
        assert draft.maintenance_type_id is None
        assert draft.next_service_km == 0
        assert draft.next_service_date is None

    def test_projection_stays_editable(self):
        draft = MaintenanceDraft(date_performed=date(2024, 1, 15), mileage_at_service=50000)
        draft.select_type(OIL)
        draft.next_service_km = 58000
        record = draft.to_record("c1")
        assert record.next_service_km == 58000
        assert record.next_service_date == date(2024, 7, 15)

    def test_to_record(self):
        draft = MaintenanceDraft(
            date_performed=date(2024, 3, 1),
            mileage_at_service=30000,
            cost=250,
            service_provider="Oficina do Zé",
        )
        draft.select_type(OIL)
        record = draft.to_record("c1")
        assert record.car_id == "c1"
        assert record.maintenance_type_id == "oleo-motor"
        assert record.cost == 250
        assert record.service_provider == "Oficina do Zé"
        assert record.id is None
