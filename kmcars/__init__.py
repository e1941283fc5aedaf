"""
Vehicle health tracking: cars, maintenance services and fuel fill-ups.

This package provides:
- Status: Urgency levels (OVERDUE, DUE_SOON, OK)
- Car, MaintenanceType, MaintenanceRecord, FuelRecord: Domain records
- CarDraft, MaintenanceDraft, FuelDraft: Form state before submission
- ServiceDue: Calculated due status of a maintenance record
- Calculations: next-service projection, due status, fuel economy
- Backends and identity providers (YAML file, Supabase)
- Record stores and the maintenance dashboard
"""

from .status import Status
from .car import Car, CarDraft
from .maintenance_type import MaintenanceType
from .maintenance_record import MaintenanceRecord, MaintenanceDraft
from .fuel_record import FuelRecord, FuelDraft
from .service_due import ServiceDue
from .calculations import (
    calc_next_service_km,
    calc_next_service_date,
    project_next_service,
    check_due_status,
    calculate_service_due,
    format_km,
    format_time_until_service,
)
from .fuel_economy import (
    Consumption,
    FuelStats,
    latest_consumption,
    average_consumption,
    total_spent,
    fuel_stats,
)
from .errors import (
    KMCarsError,
    ValidationError,
    BackendError,
    MissingPrerequisiteError,
    AuthError,
    CatalogError,
)
from .backend import Backend, YamlBackend, Filter, Order, eq, in_, init_data_file
from .identity import Session, SignUp, Identity, LocalIdentity
from .dashboard import Dashboard, DashboardStats, build_dashboard
from .stores import CarStore, MaintenanceStore, FuelStore

__all__ = [
    "Status",
    "Car",
    "CarDraft",
    "MaintenanceType",
    "MaintenanceRecord",
    "MaintenanceDraft",
    "FuelRecord",
    "FuelDraft",
    "ServiceDue",
    "calc_next_service_km",
    "calc_next_service_date",
    "project_next_service",
    "check_due_status",
    "calculate_service_due",
    "format_km",
    "format_time_until_service",
    "Consumption",
    "FuelStats",
    "latest_consumption",
    "average_consumption",
    "total_spent",
    "fuel_stats",
    "KMCarsError",
    "ValidationError",
    "BackendError",
    "MissingPrerequisiteError",
    "AuthError",
    "CatalogError",
    "Backend",
    "YamlBackend",
    "Filter",
    "Order",
    "eq",
    "in_",
    "init_data_file",
    "Session",
    "SignUp",
    "Identity",
    "LocalIdentity",
    "Dashboard",
    "DashboardStats",
    "build_dashboard",
    "CarStore",
    "MaintenanceStore",
    "FuelStore",
]
