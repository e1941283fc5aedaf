#!/usr/bin/env python3
"""
Unified CLI for vehicle health tracking.

Commands:
  signup          - Create an account
  dashboard       - Show overdue and upcoming maintenance for all cars
  cars            - List your cars
  add-car         - Register a car
  update-car      - Edit a car (mileage, plate, ...)
  delete-car      - Delete a car and its records
  types           - List maintenance types and their intervals
  maintenance     - Show a car's maintenance records and their status
  log-maintenance - Record a performed service
  fuel            - Show a car's fill-ups and fuel economy
  log-fuel        - Record a fill-up
  catalog         - Browse the FIPE brand/model/year catalog
  validate        - Check a YAML data file against the schema
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional, Sequence

from kmcars import (
    Car,
    CarDraft,
    CarStore,
    FuelDraft,
    FuelRecord,
    FuelStore,
    KMCarsError,
    MaintenanceDraft,
    MaintenanceStore,
    MaintenanceType,
    MissingPrerequisiteError,
    ServiceDue,
    format_km,
    format_time_until_service,
)
from kmcars.catalog import CatalogItem, VehicleCatalog
from kmcars.config import configure_logging, get_settings
from kmcars.connect import connect
from kmcars.fuel_economy import Consumption
from kmcars.validation import parse_form_date, validate_data_file

logger = logging.getLogger("garage")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_money(value: Optional[float]) -> str:
    """Format an amount in reais, e.g. 'R$ 1.234,56'."""
    if value is None:
        return "-"
    text = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {text}"


def format_consumption(value: Optional[float]) -> str:
    """Format km per liter, or '-' when unavailable."""
    return f"{value:.1f} km/L" if value is not None else "-"


def format_date(value: Optional[date]) -> str:
    """Format a date as dd/mm/yyyy."""
    return value.strftime("%d/%m/%Y") if value is not None else "-"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def resolve_car(cars: Sequence[Car], ref: str) -> Car:
    """
    Find a car by id, unique id prefix, or 1-based position in the list.
    """
    for car in cars:
        if car.id == ref:
            return car
    matches = [car for car in cars if car.id and car.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if ref.isdigit() and 1 <= int(ref) <= len(cars):
        return cars[int(ref) - 1]
    raise MissingPrerequisiteError(f"Carro não encontrado: {ref}")


# =============================================================================
# Table builders
# =============================================================================


def make_cars_table(cars: Sequence[Car]) -> List[List[str]]:
    """Convert cars to table rows."""
    rows = []
    for index, car in enumerate(cars, start=1):
        rows.append(
            [
                str(index),
                (car.id or "-")[:8],
                car.name,
                f"{format_km(car.mileage)} km",
                car.license_plate or "-",
                car.color or "-",
                car.engine_type or "-",
            ]
        )
    return rows


def make_types_table(types: Sequence[MaintenanceType]) -> List[List[str]]:
    return [[t.id, t.name, t.category or "-", t.interval_display] for t in types]


def make_maintenance_table(services: Sequence[ServiceDue]) -> List[List[str]]:
    """Convert a car's records (with due status) to table rows."""
    rows = []
    for svc in services:
        record = svc.record
        next_parts = []
        if record.has_km_target:
            next_parts.append(f"{format_km(record.next_service_km)} km")
        if record.next_service_date:
            next_parts.append(format_date(record.next_service_date))
        rows.append(
            [
                svc.status.badge,
                record.type_name,
                format_date(record.date_performed),
                f"{format_km(record.mileage_at_service)} km",
                format_money(record.cost),
                " / ".join(next_parts) or "-",
                truncate(record.service_provider),
                truncate(record.notes),
            ]
        )
    return rows


def make_alert_table(services: Sequence[ServiceDue]) -> List[List[str]]:
    """Convert dashboard alerts to table rows."""
    rows = []
    for svc in services:
        car = svc.record.car
        rows.append(
            [
                f"{car.brand} {car.model}" if car else svc.record.car_id,
                svc.record.type_name,
                format_time_until_service(svc),
            ]
        )
    return rows


def make_fuel_table(records: Sequence[FuelRecord]) -> List[List[str]]:
    """Convert fill-ups to table rows."""
    rows = []
    for record in records:
        rows.append(
            [
                format_date(record.date_filled),
                f"{format_km(record.mileage)} km",
                record.fuel_type,
                f"{record.liters:.2f} L",
                format_money(record.cost_per_liter),
                format_money(record.total_cost),
                "sim" if record.is_full_tank else "não",
                truncate(record.gas_station),
            ]
        )
    return rows


def make_catalog_table(items: Sequence[CatalogItem]) -> List[List[str]]:
    return [[item.code, item.name] for item in items]


# =============================================================================
# Account commands
# =============================================================================


def cmd_signup(args, identity) -> int:
    """Create an account."""
    result = identity.sign_up(args.email, args.password, args.name)
    print(f"Conta criada: {result.session.email}")
    if result.confirmation_pending:
        print("Confirme seu email para entrar.")
    return 0


# =============================================================================
# Dashboard command
# =============================================================================


def cmd_dashboard(args, backend, session, settings) -> int:
    """Show overdue and upcoming maintenance for all cars."""
    cars = CarStore(backend, session).list()
    maintenance = MaintenanceStore(
        backend, session, settings.DUE_SOON_DAYS, settings.DUE_SOON_KM
    )
    dashboard = maintenance.alerts(cars)
    stats = dashboard.stats

    print(f"Usuário: {session.email}")
    print(f"Carros: {stats.total_cars}")
    print(f"Com manutenção atrasada: {stats.cars_with_overdue}")
    print(f"Com manutenção nos próximos {settings.DUE_SOON_DAYS} dias: {stats.cars_with_upcoming}")
    print(f"Sem pendências: {stats.cars_up_to_date}")
    print()

    if not cars:
        print("Nenhum carro cadastrado. Use 'add-car' para começar.")
        return 0

    headers = ["Carro", "Manutenção", "Prazo"]
    if dashboard.overdue:
        print("ATRASADAS:")
        print(tabulate(make_alert_table(dashboard.overdue), headers=headers, tablefmt="simple"))
        print()

    if dashboard.upcoming:
        print("PRÓXIMAS:")
        print(tabulate(make_alert_table(dashboard.upcoming), headers=headers, tablefmt="simple"))
        print()

    if not dashboard.has_alerts:
        print("Nenhuma manutenção pendente.")

    return 0


# =============================================================================
# Car commands
# =============================================================================


def cmd_cars(args, backend, session, settings) -> int:
    """List your cars."""
    cars = CarStore(backend, session).list()
    if not cars:
        print("Nenhum carro cadastrado.")
        return 0
    headers = ["#", "Id", "Carro", "Quilometragem", "Placa", "Cor", "Motor"]
    print(tabulate(make_cars_table(cars), headers=headers, tablefmt="simple"))
    return 0


def cmd_add_car(args, backend, session, settings) -> int:
    """Register a car."""
    draft = CarDraft(
        brand=args.brand,
        model=args.model,
        year=args.year,
        mileage=args.mileage,
        license_plate=args.plate,
        color=args.color,
        engine_type=args.engine,
    )
    cars = CarStore(backend, session).create(draft)
    print("Carro cadastrado com sucesso!")
    print(f"Carros: {len(cars)}")
    return 0


def cmd_update_car(args, backend, session, settings) -> int:
    """Edit a car."""
    store = CarStore(backend, session)
    car = resolve_car(store.list(), args.car)
    draft = CarDraft.from_car(car)
    for field, value in (
        ("brand", args.brand),
        ("model", args.model),
        ("year", args.year),
        ("mileage", args.mileage),
        ("license_plate", args.plate),
        ("color", args.color),
        ("engine_type", args.engine),
    ):
        if value is not None:
            setattr(draft, field, value)

    if args.mileage is not None and args.mileage < car.mileage:
        print(f"Atenção: quilometragem menor que a atual ({format_km(car.mileage)} km)")

    store.update(car.id, draft)
    print("Carro atualizado com sucesso!")
    return 0


def cmd_delete_car(args, backend, session, settings) -> int:
    """Delete a car and all of its records."""
    store = CarStore(backend, session)
    car = resolve_car(store.list(), args.car)

    print(f"Excluir {car.name} e todos os seus registros?")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.delete(car.id)
    print("Carro excluído com sucesso!")
    return 0


# =============================================================================
# Maintenance commands
# =============================================================================


def cmd_types(args, backend, session, settings) -> int:
    """List maintenance types and their default intervals."""
    types = MaintenanceStore(backend, session).list_types()
    headers = ["Id", "Tipo", "Categoria", "Intervalo"]
    print(tabulate(make_types_table(types), headers=headers, tablefmt="simple"))
    return 0


def cmd_maintenance(args, backend, session, settings) -> int:
    """Show a car's maintenance records with their due status."""
    car = resolve_car(CarStore(backend, session).list(), args.car)
    store = MaintenanceStore(backend, session, settings.DUE_SOON_DAYS, settings.DUE_SOON_KM)
    records = store.list(car)

    print(f"Carro: {car.name}")
    print(f"Quilometragem atual: {format_km(car.mileage)} km")
    print(f"Manutenções: {len(records)}")
    total_cost = sum(r.cost for r in records)
    if total_cost > 0:
        print(f"Custo total: {format_money(total_cost)}")
    print()

    if not records:
        print("Nenhuma manutenção registrada.")
        return 0

    services = store.due_status(car, records)
    if args.due:
        services = [s for s in services if s.is_due]
        services.sort(key=lambda s: s.status.value)

    headers = ["Status", "Tipo", "Data", "Km", "Custo", "Próxima", "Oficina", "Notas"]
    print(tabulate(make_maintenance_table(services), headers=headers, tablefmt="simple"))
    return 0


def cmd_log_maintenance(args, backend, session, settings) -> int:
    """Record a performed service."""
    car = resolve_car(CarStore(backend, session).list(), args.car)
    store = MaintenanceStore(backend, session, settings.DUE_SOON_DAYS, settings.DUE_SOON_KM)

    # Case-insensitive match on type id or name
    wanted = args.type.lower()
    types = store.list_types()
    maintenance_type = next(
        (t for t in types if t.id.lower() == wanted or t.name.lower() == wanted), None
    )
    if maintenance_type is None:
        print(f"Error: Unknown maintenance type '{args.type}'")
        print("\nAvailable types:")
        for t in types:
            print(f"  {t.id:<28} {t.name}")
        return 1

    draft = MaintenanceDraft(
        date_performed=parse_form_date(args.date, "date_performed"),
        mileage_at_service=args.mileage if args.mileage is not None else car.mileage,
        cost=args.cost or 0,
        service_provider=args.provider,
        notes=args.notes,
    )
    draft.select_type(maintenance_type)
    if args.next_km is not None:
        draft.next_service_km = args.next_km
    if args.next_date is not None:
        draft.next_service_date = parse_form_date(args.next_date, "next_service_date")

    print(f"Registrando manutenção em {car.name}:")
    print(f"  Tipo:     {maintenance_type.name}")
    print(f"  Data:     {format_date(draft.date_performed)}")
    print(f"  Km:       {format_km(draft.mileage_at_service)}")
    if draft.cost:
        print(f"  Custo:    {format_money(draft.cost)}")
    if draft.service_provider:
        print(f"  Oficina:  {draft.service_provider}")
    if draft.next_service_km:
        print(f"  Próxima:  {format_km(draft.next_service_km)} km")
    if draft.next_service_date:
        print(f"  Próxima:  {format_date(draft.next_service_date)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store.create(car, draft)
    print("Manutenção registrada com sucesso!")
    return 0


# =============================================================================
# Fuel commands
# =============================================================================


def print_fuel_stats(records: Sequence[FuelRecord]) -> None:
    stats = FuelStore.stats(list(records))
    latest: Optional[Consumption] = stats.latest
    print(f"Abastecimentos: {stats.fill_ups}")
    if latest is not None:
        print(
            f"Consumo atual: {format_consumption(latest.consumption)} "
            f"({format_km(latest.km_driven)} km / {latest.liters_used:.2f} L)"
        )
    else:
        print("Consumo atual: -")
    print(f"Consumo médio: {format_consumption(stats.average)}")
    print(f"Total gasto: {format_money(stats.total_spent)}")


def cmd_fuel(args, backend, session, settings) -> int:
    """Show a car's fill-ups and fuel economy."""
    car = resolve_car(CarStore(backend, session).list(), args.car)
    records = FuelStore(backend, session).list(car)

    print(f"Carro: {car.name}")
    print_fuel_stats(records)
    print()

    if not records:
        print("Nenhum abastecimento registrado.")
        return 0

    headers = ["Data", "Km", "Combustível", "Litros", "Preço/L", "Total", "Tanque cheio", "Posto"]
    print(tabulate(make_fuel_table(records), headers=headers, tablefmt="simple"))
    return 0


def cmd_log_fuel(args, backend, session, settings) -> int:
    """Record a fill-up."""
    car = resolve_car(CarStore(backend, session).list(), args.car)

    draft = FuelDraft(
        date_filled=parse_form_date(args.date, "date_filled"),
        mileage=args.mileage if args.mileage is not None else car.mileage,
        fuel_type=args.fuel_type,
        gas_station=args.station,
        is_full_tank=not args.partial,
        notes=args.notes,
    )
    # Apply cost fields in the order given on the command line
    for field, value in args.cost_fields:
        draft.set_field(field, value)

    print(f"Registrando abastecimento em {car.name}:")
    print(f"  Data:     {format_date(draft.date_filled)}")
    print(f"  Km:       {format_km(draft.mileage)}")
    print(f"  Litros:   {draft.liters:.2f} ({draft.fuel_type})")
    print(f"  Preço/L:  {format_money(draft.cost_per_liter)}")
    print(f"  Total:    {format_money(draft.total_cost)}")
    print(f"  Tanque cheio: {'sim' if draft.is_full_tank else 'não'}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    store = FuelStore(backend, session)
    records = store.create(car, draft)
    print("Abastecimento registrado com sucesso!")
    print_fuel_stats(records)
    return 0


# =============================================================================
# Catalog and validate commands
# =============================================================================


def cmd_catalog(args, settings) -> int:
    """Browse brands, models of a brand, or years of a model."""
    catalog = VehicleCatalog(settings.FIPE_API_URL, settings.CATALOG_TTL_SECONDS)
    if args.brand and args.model:
        items, title = catalog.years(args.brand, args.model), "Anos"
    elif args.brand:
        items, title = catalog.models(args.brand), "Modelos"
    else:
        items, title = catalog.brands(), "Marcas"
    if args.search:
        items = [i for i in items if args.search.lower() in i.name.lower()]
    print(f"{title}: {len(items)}")
    print(tabulate(make_catalog_table(items), headers=["Código", "Nome"], tablefmt="simple"))
    return 0


def cmd_validate(args, settings) -> int:
    """Validate a YAML data file against the schema."""
    path = args.file or settings.KMCARS_DATA_FILE
    errors = validate_data_file(path)
    if errors:
        print(f"FAIL: {path}")
        for error in errors:
            print(f"  {error}")
        return 1
    print(f"OK: {path}")
    return 0


# =============================================================================
# Main
# =============================================================================


class CostFieldAction(argparse.Action):
    """Collect --liters/--price/--total in command-line order."""

    def __call__(self, parser, namespace, values, option_string=None):
        fields = list(getattr(namespace, "cost_fields", None) or [])
        fields.append((self.dest, values))
        namespace.cost_fields = fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vehicle health tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --email me@example.com --password secret dashboard
  %(prog)s cars
  %(prog)s add-car Toyota Corolla 2020 --mileage 35000 --plate ABC1D23
  %(prog)s update-car 1 --mileage 41000
  %(prog)s types
  %(prog)s log-maintenance 1 oleo-motor --cost 250 --provider "Oficina do Zé"
  %(prog)s maintenance 1 --due
  %(prog)s log-fuel 1 --mileage 41500 --liters 40 --price 5.89
  %(prog)s fuel 1
  %(prog)s catalog --brand 59
  %(prog)s validate kmcars.yaml
""",
    )
    parser.add_argument("--email", type=str, help="Account email (default: KMCARS_EMAIL)")
    parser.add_argument(
        "--password", type=str, help="Account password (default: KMCARS_PASSWORD)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    signup_parser = subparsers.add_parser("signup", help="Create an account")
    signup_parser.add_argument("--name", type=str, help="Full name")

    subparsers.add_parser(
        "dashboard", help="Show overdue and upcoming maintenance for all cars"
    )
    subparsers.add_parser("cars", help="List your cars")

    add_car_parser = subparsers.add_parser("add-car", help="Register a car")
    add_car_parser.add_argument("brand", type=str, help="Brand (e.g. 'Toyota')")
    add_car_parser.add_argument("model", type=str, help="Model (e.g. 'Corolla')")
    add_car_parser.add_argument("year", type=int, help="Model year")
    add_car_parser.add_argument("--mileage", type=float, default=0, help="Current mileage (km)")
    add_car_parser.add_argument("--plate", type=str, help="License plate")
    add_car_parser.add_argument("--color", type=str, help="Color")
    add_car_parser.add_argument("--engine", type=str, help="Engine type (e.g. '1.0 flex')")

    update_car_parser = subparsers.add_parser("update-car", help="Edit a car")
    update_car_parser.add_argument("car", type=str, help="Car id, id prefix or list position")
    update_car_parser.add_argument("--brand", type=str)
    update_car_parser.add_argument("--model", type=str)
    update_car_parser.add_argument("--year", type=int)
    update_car_parser.add_argument("--mileage", type=float, help="Current mileage (km)")
    update_car_parser.add_argument("--plate", type=str)
    update_car_parser.add_argument("--color", type=str)
    update_car_parser.add_argument("--engine", type=str)

    delete_car_parser = subparsers.add_parser(
        "delete-car", help="Delete a car and all of its records"
    )
    delete_car_parser.add_argument("car", type=str, help="Car id, id prefix or list position")
    delete_car_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be deleted without deleting"
    )

    subparsers.add_parser("types", help="List maintenance types")

    maintenance_parser = subparsers.add_parser(
        "maintenance", help="Show a car's maintenance records"
    )
    maintenance_parser.add_argument("car", type=str, help="Car id, id prefix or list position")
    maintenance_parser.add_argument(
        "--due", action="store_true", help="Only overdue and upcoming services"
    )

    log_maintenance_parser = subparsers.add_parser(
        "log-maintenance", help="Record a performed service"
    )
    log_maintenance_parser.add_argument("car", type=str, help="Car id, id prefix or list position")
    log_maintenance_parser.add_argument("type", type=str, help="Maintenance type id or name")
    log_maintenance_parser.add_argument(
        "--date", type=str, help="Service date in YYYY-MM-DD format (default: today)"
    )
    log_maintenance_parser.add_argument(
        "--mileage", type=float, help="Mileage at service (default: car mileage)"
    )
    log_maintenance_parser.add_argument("--cost", type=float, help="Cost of service")
    log_maintenance_parser.add_argument("--provider", type=str, help="Service provider")
    log_maintenance_parser.add_argument("--notes", type=str, help="Notes about the service")
    log_maintenance_parser.add_argument(
        "--next-km", type=float, help="Override the projected next service mileage"
    )
    log_maintenance_parser.add_argument(
        "--next-date", type=str, help="Override the projected next service date"
    )
    log_maintenance_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    fuel_parser = subparsers.add_parser("fuel", help="Show a car's fill-ups and fuel economy")
    fuel_parser.add_argument("car", type=str, help="Car id, id prefix or list position")

    log_fuel_parser = subparsers.add_parser("log-fuel", help="Record a fill-up")
    log_fuel_parser.add_argument("car", type=str, help="Car id, id prefix or list position")
    log_fuel_parser.add_argument(
        "--date", type=str, help="Fill-up date in YYYY-MM-DD format (default: today)"
    )
    log_fuel_parser.add_argument(
        "--mileage", type=float, help="Odometer reading (default: car mileage)"
    )
    log_fuel_parser.add_argument(
        "--liters", dest="liters", type=float, action=CostFieldAction, help="Liters filled"
    )
    log_fuel_parser.add_argument(
        "--price", dest="cost_per_liter", type=float, action=CostFieldAction,
        help="Price per liter",
    )
    log_fuel_parser.add_argument(
        "--total", dest="total_cost", type=float, action=CostFieldAction,
        help="Total cost (recomputes price per liter)",
    )
    log_fuel_parser.add_argument("--fuel-type", type=str, default="gasolina")
    log_fuel_parser.add_argument("--station", type=str, help="Gas station")
    log_fuel_parser.add_argument(
        "--partial", action="store_true", help="Not a full tank"
    )
    log_fuel_parser.add_argument("--notes", type=str)
    log_fuel_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )
    log_fuel_parser.set_defaults(cost_fields=[])

    catalog_parser = subparsers.add_parser("catalog", help="Browse the FIPE vehicle catalog")
    catalog_parser.add_argument("--brand", type=str, help="Brand code (lists models)")
    catalog_parser.add_argument("--model", type=str, help="Model code (lists years)")
    catalog_parser.add_argument("--search", type=str, help="Filter names containing text")

    validate_parser = subparsers.add_parser("validate", help="Validate a YAML data file")
    validate_parser.add_argument("file", type=Path, nargs="?", help="Data file (default: KMCARS_DATA_FILE)")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else settings.LOG_LEVEL)

    try:
        if args.command == "catalog":
            return cmd_catalog(args, settings)
        if args.command == "validate":
            return cmd_validate(args, settings)

        backend, identity = connect(settings)
        args.email = args.email or settings.KMCARS_EMAIL
        args.password = args.password or settings.KMCARS_PASSWORD
        if not args.email or not args.password:
            print("Error: --email and --password (or KMCARS_EMAIL/KMCARS_PASSWORD) are required")
            return 1

        if args.command == "signup":
            return cmd_signup(args, identity)

        session = identity.sign_in(args.email, args.password)
        backend = backend.for_session(session)

        # Dispatch to command handler
        handlers = {
            "dashboard": cmd_dashboard,
            "cars": cmd_cars,
            "add-car": cmd_add_car,
            "update-car": cmd_update_car,
            "delete-car": cmd_delete_car,
            "types": cmd_types,
            "maintenance": cmd_maintenance,
            "log-maintenance": cmd_log_maintenance,
            "fuel": cmd_fuel,
            "log-fuel": cmd_log_fuel,
        }
        return handlers[args.command](args, backend, session, settings)
    except KMCarsError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e.title}: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
