"""Flask web application for vehicle health tracking."""

import logging
from datetime import date
from functools import wraps
from typing import Optional

from flask import (
    Flask,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from kmcars import (
    CarDraft,
    CarStore,
    FuelDraft,
    FuelStore,
    KMCarsError,
    MaintenanceDraft,
    MaintenanceStore,
    Session,
    Status,
    format_km,
    format_time_until_service,
)
from kmcars.catalog import VehicleCatalog
from kmcars.config import Settings, configure_logging, get_settings
from kmcars.connect import connect
from kmcars.errors import AuthError, CatalogError
from kmcars.fuel_record import FUEL_TYPES
from kmcars.rows import format_date as iso_date
from kmcars.validation import parse_form_date

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 5


def format_money(value):
    """Format an amount in reais."""
    if value is None:
        return "-"
    text = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {text}"


def format_date(value):
    """Format date for display (dd/mm/yyyy)."""
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y")


def format_consumption(value):
    if value is None:
        return "-"
    return f"{value:.1f} km/L"


def status_color(status: Status) -> str:
    """Get Tailwind color classes for status."""
    colors = {
        Status.OVERDUE: "bg-red-100 text-red-800 border-red-200",
        Status.DUE_SOON: "bg-yellow-100 text-yellow-800 border-yellow-200",
        Status.OK: "bg-green-100 text-green-800 border-green-200",
    }
    return colors.get(status, "bg-gray-100 text-gray-800")


def status_badge_color(status: Status) -> str:
    """Get Tailwind color classes for status badge."""
    colors = {
        Status.OVERDUE: "bg-red-500 text-white",
        Status.DUE_SOON: "bg-yellow-500 text-white",
        Status.OK: "bg-green-500 text-white",
    }
    return colors.get(status, "bg-gray-500 text-white")


def _float(value: Optional[str], default: float = 0) -> float:
    """Parse a numeric form field; blank or invalid values fall back to default."""
    try:
        return float(value) if value not in (None, "") else default
    except ValueError:
        return default


def _int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else default
    except ValueError:
        return default


def car_draft_from_form(form) -> CarDraft:
    return CarDraft(
        brand=form.get("brand", "").strip(),
        model=form.get("model", "").strip(),
        year=_int(form.get("year")),
        mileage=_float(form.get("mileage")),
        license_plate=form.get("license_plate") or None,
        color=form.get("color") or None,
        engine_type=form.get("engine_type") or None,
    )


def fuel_draft_from_form(form) -> FuelDraft:
    """
    Build a fill-up draft from the form.

    The form reports which cost field the user edited last; that field and
    liters are applied last so the third one is derived from them.
    """
    draft = FuelDraft(
        date_filled=parse_form_date(form.get("date_filled"), "date_filled"),
        mileage=_float(form.get("mileage")),
        fuel_type=form.get("fuel_type") or "gasolina",
        gas_station=form.get("gas_station") or None,
        is_full_tank=form.get("is_full_tank") in ("on", "true", "1"),
        notes=form.get("notes") or None,
    )
    draft.set_liters(_float(form.get("liters")))
    if form.get("last_edited") == "total_cost":
        draft.set_total_cost(_float(form.get("total_cost")))
    else:
        draft.set_cost_per_liter(_float(form.get("cost_per_liter")))
    return draft


def maintenance_draft_from_form(form) -> MaintenanceDraft:
    next_km = form.get("next_service_km")
    return MaintenanceDraft(
        date_performed=parse_form_date(form.get("date_performed"), "date_performed"),
        mileage_at_service=_float(form.get("mileage_at_service")),
        maintenance_type_id=form.get("maintenance_type_id") or None,
        cost=_float(form.get("cost")),
        service_provider=form.get("service_provider") or None,
        notes=form.get("notes") or None,
        next_service_km=_float(next_km) if next_km not in (None, "") else None,
        next_service_date=parse_form_date(form.get("next_service_date"), "next_service_date"),
    )


def create_app(
    settings: Optional[Settings] = None, backend=None, identity=None, catalog=None
) -> Flask:
    """Build the web app. Collaborators default to the ones configured in settings."""
    settings = settings or get_settings()
    if backend is None or identity is None:
        backend, identity = connect(settings)
    if catalog is None:
        catalog = VehicleCatalog(settings.FIPE_API_URL, settings.CATALOG_TTL_SECONDS)

    app = Flask(__name__)
    app.secret_key = settings.SECRET_KEY
    app.config["KMCARS_SETTINGS"] = settings
    app.config["KMCARS_BACKEND"] = backend
    app.config["KMCARS_IDENTITY"] = identity
    app.config["KMCARS_CATALOG"] = catalog

    # Register template filters
    app.jinja_env.filters["format_km"] = format_km
    app.jinja_env.filters["format_money"] = format_money
    app.jinja_env.filters["format_date"] = format_date
    app.jinja_env.filters["format_consumption"] = format_consumption
    app.jinja_env.filters["time_until_service"] = format_time_until_service
    app.jinja_env.filters["status_color"] = status_color
    app.jinja_env.filters["status_badge_color"] = status_badge_color

    def current_session() -> Optional[Session]:
        return Session.from_dict(session.get("auth"))

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            auth = current_session()
            if auth is None:
                return redirect(url_for("login"))
            if auth.expired():
                try:
                    auth = identity.refresh(auth)
                except AuthError as e:
                    logger.info(f"Session of {auth.email} could not be refreshed: {e.message}")
                    session.pop("auth", None)
                    flash("Sessão expirada. Entre novamente.", "error")
                    return redirect(url_for("login"))
                session["auth"] = auth.to_dict()
            user_backend = backend.for_session(auth)
            g.auth = auth
            g.cars = CarStore(user_backend, auth)
            g.maintenance = MaintenanceStore(
                user_backend, auth, settings.DUE_SOON_DAYS, settings.DUE_SOON_KM
            )
            g.fuel = FuelStore(user_backend, auth)
            return view(*args, **kwargs)

        return wrapper

    def get_car_or_redirect(car_id: str):
        car = g.cars.get(car_id)
        if car is None:
            flash("Carro não encontrado", "error")
        return car

    @app.errorhandler(KMCarsError)
    def handle_error(e: KMCarsError):
        """
        Show the error as a notification.

        Failed submissions go back to the form page; failed page loads render
        the error in place.
        """
        logger.warning(f"{request.method} {request.path}: {e.title}: {e.message}")
        flash(f"{e.title}: {e.message}", "error")
        if request.method == "POST":
            return redirect(request.referrer or url_for("index"))
        return render_template("error.html", auth=g.get("auth"), error=e), 400

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    @app.route("/login", methods=["GET"])
    def login():
        if current_session() is not None:
            return redirect(url_for("index"))
        return render_template("login.html")

    @app.route("/login", methods=["POST"])
    def login_submit():
        auth = identity.sign_in(request.form.get("email", ""), request.form.get("password", ""))
        session["auth"] = auth.to_dict()
        return redirect(url_for("index"))

    @app.route("/signup", methods=["POST"])
    def signup_submit():
        result = identity.sign_up(
            request.form.get("email", ""),
            request.form.get("password", ""),
            request.form.get("full_name") or None,
        )
        flash("Conta criada com sucesso!", "success")
        if result.confirmation_pending:
            flash("Confirme seu email para entrar.", "success")
            return redirect(url_for("login"))
        session["auth"] = result.session.to_dict()
        return redirect(url_for("index"))

    @app.route("/logout", methods=["POST"])
    def logout():
        auth = current_session()
        session.pop("auth", None)
        if auth is not None:
            identity.sign_out(auth)
        return redirect(url_for("login"))

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    @app.route("/")
    @login_required
    def index():
        """Dashboard with overdue and upcoming maintenance for all cars."""
        cars = g.cars.list()
        dashboard = g.maintenance.alerts(cars)
        selected = g.cars.get(session["car_id"]) if session.get("car_id") else None
        return render_template(
            "index.html",
            auth=g.auth,
            cars=cars,
            selected_car=selected or (cars[0] if cars else None),
            dashboard=dashboard,
            upcoming=dashboard.upcoming[:UPCOMING_LIMIT],
            soon_days=settings.DUE_SOON_DAYS,
            active_tab="dashboard",
        )

    # -------------------------------------------------------------------------
    # Cars
    # -------------------------------------------------------------------------

    @app.route("/cars")
    @login_required
    def cars_page():
        cars = g.cars.list()
        editing = None
        if request.args.get("edit"):
            editing = next((c for c in cars if c.id == request.args["edit"]), None)
        return render_template(
            "cars.html",
            auth=g.auth,
            cars=cars,
            editing=editing,
            draft=CarDraft.from_car(editing) if editing else CarDraft(),
            max_year=date.today().year + 1,
            active_tab="cars",
        )

    @app.route("/cars", methods=["POST"])
    @login_required
    def create_car():
        g.cars.create(car_draft_from_form(request.form))
        flash("Carro cadastrado com sucesso!", "success")
        return redirect(url_for("cars_page"))

    @app.route("/cars/<car_id>/edit", methods=["POST"])
    @login_required
    def update_car(car_id: str):
        g.cars.update(car_id, car_draft_from_form(request.form))
        flash("Carro atualizado com sucesso!", "success")
        return redirect(url_for("cars_page"))

    @app.route("/cars/<car_id>/delete", methods=["POST"])
    @login_required
    def delete_car(car_id: str):
        g.cars.delete(car_id)
        if session.get("car_id") == car_id:
            session.pop("car_id")
        flash("Carro excluído com sucesso!", "success")
        return redirect(url_for("cars_page"))

    @app.route("/cars/<car_id>/select", methods=["POST"])
    @login_required
    def select_car(car_id: str):
        session["car_id"] = car_id
        return redirect(request.referrer or url_for("index"))

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    @app.route("/cars/<car_id>/maintenance")
    @login_required
    def maintenance_page(car_id: str):
        car = get_car_or_redirect(car_id)
        if car is None:
            return redirect(url_for("cars_page"))
        session["car_id"] = car.id
        records = g.maintenance.list(car)
        return render_template(
            "maintenance.html",
            auth=g.auth,
            car=car,
            services=g.maintenance.due_status(car, records),
            types=g.maintenance.list_types(),
            draft=MaintenanceDraft.for_car(car),
            active_tab="maintenance",
        )

    @app.route("/cars/<car_id>/maintenance/projection")
    @login_required
    def maintenance_projection(car_id: str):
        """Project the next service for the chosen type (JSON, used by the form)."""
        draft = MaintenanceDraft(
            date_performed=parse_form_date(request.args.get("date_performed"), "date_performed"),
            mileage_at_service=_float(request.args.get("mileage_at_service")),
        )
        type_id = request.args.get("maintenance_type_id")
        draft.select_type(g.maintenance.get_type(type_id) if type_id else None)
        return jsonify(
            next_service_km=draft.next_service_km,
            next_service_date=iso_date(draft.next_service_date),
        )

    @app.route("/cars/<car_id>/maintenance", methods=["POST"])
    @login_required
    def create_maintenance(car_id: str):
        car = get_car_or_redirect(car_id)
        if car is None:
            return redirect(url_for("cars_page"))
        g.maintenance.create(car, maintenance_draft_from_form(request.form))
        flash("Manutenção registrada com sucesso!", "success")
        return redirect(url_for("maintenance_page", car_id=car_id))

    # -------------------------------------------------------------------------
    # Fuel
    # -------------------------------------------------------------------------

    @app.route("/cars/<car_id>/fuel")
    @login_required
    def fuel_page(car_id: str):
        car = get_car_or_redirect(car_id)
        if car is None:
            return redirect(url_for("cars_page"))
        session["car_id"] = car.id
        records = g.fuel.list(car)
        return render_template(
            "fuel.html",
            auth=g.auth,
            car=car,
            records=records,
            stats=g.fuel.stats(records),
            draft=FuelDraft.for_car(car),
            fuel_types=FUEL_TYPES,
            active_tab="fuel",
        )

    @app.route("/cars/<car_id>/fuel", methods=["POST"])
    @login_required
    def create_fuel(car_id: str):
        car = get_car_or_redirect(car_id)
        if car is None:
            return redirect(url_for("cars_page"))
        g.fuel.create(car, fuel_draft_from_form(request.form))
        flash("Abastecimento registrado com sucesso!", "success")
        return redirect(url_for("fuel_page", car_id=car_id))

    # -------------------------------------------------------------------------
    # Vehicle catalog (JSON for the cascading selects)
    # -------------------------------------------------------------------------

    def catalog_response(items):
        return jsonify([{"codigo": i.code, "nome": i.name} for i in items])

    @app.route("/catalog/brands")
    @login_required
    def catalog_brands():
        try:
            return catalog_response(catalog.brands())
        except CatalogError as e:
            return jsonify(error=e.message), 502

    @app.route("/catalog/brands/<brand>/models")
    @login_required
    def catalog_models(brand: str):
        try:
            return catalog_response(catalog.models(brand))
        except CatalogError as e:
            return jsonify(error=e.message), 502

    @app.route("/catalog/brands/<brand>/models/<model>/years")
    @login_required
    def catalog_years(brand: str, model: str):
        try:
            return catalog_response(catalog.years(brand, model))
        except CatalogError as e:
            return jsonify(error=e.message), 502

    return app


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app(settings).run(debug=True, host="0.0.0.0", port=5001)
