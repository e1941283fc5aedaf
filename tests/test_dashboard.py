#!/usr/bin/env python3
"""Tests for the maintenance dashboard."""

from datetime import date

import pytest

from kmcars import Car, MaintenanceRecord, build_dashboard

TODAY = date(2024, 6, 1)


def record(car_id, type_id, next_service_km=0, next_service_date=None):
    return MaintenanceRecord(
        car_id=car_id,
        maintenance_type_id=type_id,
        date_performed=date(2024, 1, 1),
        mileage_at_service=0,
        next_service_km=next_service_km,
        next_service_date=next_service_date,
    )


@pytest.fixture
def cars():
    return [
        Car("Toyota", "Corolla", 2020, mileage=10000, id="a"),
        Car("VW", "Gol", 2015, mileage=90000, id="b"),
        Car("Fiat", "Uno", 2010, mileage=50000, id="c"),
    ]


class TestBuildDashboard:
    """Tests for build_dashboard."""

    def test_splits_overdue_and_upcoming(self, cars):
        records = [
            record("a", "bateria", next_service_date=date(2024, 5, 1)),
            record("a", "rodizio-pneus", next_service_km=10500),
            record("b", "oleo-motor", next_service_km=95000, next_service_date=date(2024, 6, 20)),
            record("c", "filtro-ar", next_service_date=date(2025, 1, 1)),
        ]
        dashboard = build_dashboard(cars, records, TODAY)
        assert [s.record.maintenance_type_id for s in dashboard.overdue] == ["bateria"]
        assert [s.record.maintenance_type_id for s in dashboard.upcoming] == ["rodizio-pneus", "oleo-motor"]
        assert dashboard.has_alerts

    def test_stats(self, cars):
        records = [
            record("a", "bateria", next_service_date=date(2024, 5, 1)),
            record("a", "rodizio-pneus", next_service_km=10500),
            record("b", "oleo-motor", next_service_date=date(2024, 6, 20)),
        ]
        stats = build_dashboard(cars, records, TODAY).stats
        assert stats.total_cars == 3
        assert stats.cars_with_overdue == 1
        assert stats.cars_with_upcoming == 2
        assert stats.cars_up_to_date == 1

    def test_uses_each_cars_own_mileage(self, cars):
        records = [record("a", "x", next_service_km=60000), record("b", "x", next_service_km=60000)]
        dashboard = build_dashboard(cars, records, TODAY)
        assert [s.record.car_id for s in dashboard.overdue] == ["b"]
        assert dashboard.upcoming == []

    def test_service_due_today_is_overdue(self, cars):
        dashboard = build_dashboard(cars, [record("c", "bateria", next_service_date=TODAY)], TODAY)
        assert [s.record.maintenance_type_id for s in dashboard.overdue] == ["bateria"]
        assert dashboard.upcoming == []

    def test_ignores_records_of_unknown_cars(self, cars):
        dashboard = build_dashboard(cars, [record("zzz", "x", next_service_date=date(2020, 1, 1))], TODAY)
        assert not dashboard.has_alerts

    def test_no_records(self, cars):
        dashboard = build_dashboard(cars, [], TODAY)
        assert dashboard.overdue == []
        assert dashboard.upcoming == []
        assert dashboard.stats.cars_up_to_date == 3

    def test_no_cars(self):
        stats = build_dashboard([], [], TODAY).stats
        assert stats.total_cars == 0
        assert stats.cars_up_to_date == 0
