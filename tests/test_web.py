#!/usr/bin/env python3
"""Tests for the Flask web app."""

from dataclasses import replace

import httpx
import pytest

from kmcars import AuthError, LocalIdentity, SignUp, YamlBackend
from kmcars.catalog import VehicleCatalog
from kmcars.config import Settings
from web.app import create_app, fuel_draft_from_form, maintenance_draft_from_form


@pytest.fixture
def backend(tmp_path):
    return YamlBackend(tmp_path / "data.yaml")


def make_app(tmp_path, backend, identity, **overrides):
    settings = Settings(
        _env_file=None,
        KMCARS_BACKEND="yaml",
        KMCARS_DATA_FILE=tmp_path / "data.yaml",
        SECRET_KEY="test",
        **overrides,
    )

    def handler(request):
        if request.url.path.endswith("/marcas"):
            return httpx.Response(200, json=[{"codigo": "59", "nome": "VW - VolksWagen"}])
        return httpx.Response(503)

    catalog = VehicleCatalog(
        "https://fipe.test/carros/marcas",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    app = create_app(settings, backend, identity, catalog)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def app(tmp_path, backend):
    return make_app(tmp_path, backend, LocalIdentity(backend))


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signed_in(client):
    client.post("/signup", data={"email": "ana@example.com", "password": "secret", "full_name": "Ana"})
    return client


@pytest.fixture
def car_id(signed_in, backend):
    signed_in.post("/cars", data={"brand": "VW", "model": "Gol", "year": "2015", "mileage": "90000"})
    rows, _ = backend.select("cars")
    return rows[0]["id"]


class TestFormParsing:
    """Tests for the form-to-draft helpers."""

    def test_fuel_total_edited_last(self):
        draft = fuel_draft_from_form(
            {"liters": "40", "cost_per_liter": "5", "total_cost": "180", "last_edited": "total_cost"}
        )
        assert draft.cost_per_liter == 4.5
        assert draft.total_cost == 180

    def test_fuel_price_edited_last(self):
        draft = fuel_draft_from_form({"liters": "40", "cost_per_liter": "5", "total_cost": "180"})
        assert draft.total_cost == 200

    def test_fuel_partial_tank(self):
        assert not fuel_draft_from_form({"liters": "10"}).is_full_tank
        assert fuel_draft_from_form({"liters": "10", "is_full_tank": "on"}).is_full_tank

    def test_maintenance_blank_projection(self):
        draft = maintenance_draft_from_form({"maintenance_type_id": "oleo-motor", "mileage_at_service": "100"})
        assert draft.next_service_km is None
        assert not draft.is_projected


class TestAuth:
    """Tests for sign-in, sign-up and sign-out."""

    def test_redirects_to_login(self, client):
        response = client.get("/")
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/login")

    def test_login_page(self, client):
        response = client.get("/login")
        assert response.status_code == 200
        assert "Entrar" in response.get_data(as_text=True)

    def test_signup_then_dashboard(self, signed_in):
        response = signed_in.get("/")
        text = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Conta criada com sucesso!" in text
        assert "Bem-vindo ao KMCars!" in text

    def test_wrong_password(self, client, signed_in):
        signed_in.post("/logout")
        response = client.post(
            "/login", data={"email": "ana@example.com", "password": "nope"}, follow_redirects=True
        )
        assert "Erro de autenticação" in response.get_data(as_text=True)

    def test_login(self, client, signed_in):
        signed_in.post("/logout")
        response = client.post("/login", data={"email": "ana@example.com", "password": "secret"})
        assert response.headers["Location"].endswith("/")
        assert client.get("/").status_code == 200

    def test_logout(self, signed_in):
        signed_in.post("/logout")
        assert signed_in.get("/").status_code == 302

    def test_due_soon_window_is_configurable(self, tmp_path, backend):
        client = make_app(tmp_path, backend, LocalIdentity(backend), DUE_SOON_DAYS=45).test_client()
        client.post("/signup", data={"email": "ana@example.com", "password": "secret"})
        text = client.get("/").get_data(as_text=True)
        assert "Próximos 45 dias" in text
        assert "30 dias" not in text


class TestCars:
    """Tests for the car pages."""

    def test_create_and_list(self, signed_in, car_id):
        text = signed_in.get("/cars").get_data(as_text=True)
        assert "VW Gol 2015" in text
        assert "Carro cadastrado com sucesso!" in text

    def test_invalid_car(self, signed_in):
        response = signed_in.post(
            "/cars", data={"brand": "", "model": "Gol", "year": "2015"}, follow_redirects=True
        )
        assert "Dados inválidos" in response.get_data(as_text=True)

    def test_edit(self, signed_in, car_id, backend):
        text = signed_in.get(f"/cars?edit={car_id}").get_data(as_text=True)
        assert "Editar carro" in text
        signed_in.post(
            f"/cars/{car_id}/edit",
            data={"brand": "VW", "model": "Gol", "year": "2015", "mileage": "91000"},
        )
        rows, _ = backend.select("cars")
        assert rows[0]["mileage"] == 91000

    def test_delete(self, signed_in, car_id, backend):
        signed_in.post(f"/cars/{car_id}/delete")
        assert backend.select("cars")[0] == []

    def test_unknown_car_redirects(self, signed_in):
        response = signed_in.get("/cars/missing/maintenance")
        assert response.status_code == 302


class TestMaintenance:
    """Tests for the maintenance pages."""

    def test_page(self, signed_in, car_id):
        text = signed_in.get(f"/cars/{car_id}/maintenance").get_data(as_text=True)
        assert "Registrar manutenção" in text
        assert "Troca de óleo do motor" in text

    def test_projection(self, signed_in, car_id):
        response = signed_in.get(
            f"/cars/{car_id}/maintenance/projection",
            query_string={
                "maintenance_type_id": "oleo-motor",
                "date_performed": "2024-01-31",
                "mileage_at_service": "90000",
            },
        )
        assert response.get_json() == {"next_service_km": 100000.0, "next_service_date": "2024-07-31"}

    def test_projection_without_type(self, signed_in, car_id):
        response = signed_in.get(f"/cars/{car_id}/maintenance/projection")
        assert response.get_json() == {"next_service_km": 0, "next_service_date": None}

    def test_create(self, signed_in, car_id, backend):
        response = signed_in.post(
            f"/cars/{car_id}/maintenance",
            data={
                "maintenance_type_id": "oleo-motor",
                "date_performed": "2024-01-15",
                "mileage_at_service": "90000",
                "cost": "250",
            },
            follow_redirects=True,
        )
        text = response.get_data(as_text=True)
        assert "Manutenção registrada com sucesso!" in text
        assert "Atrasada" in text
        rows, _ = backend.select("maintenance_records")
        assert rows[0]["next_service_date"] == "2024-07-15"

    def test_malformed_date_is_rejected(self, signed_in, car_id, backend):
        response = signed_in.post(
            f"/cars/{car_id}/maintenance",
            data={"maintenance_type_id": "oleo-motor", "date_performed": "31/12/2024", "mileage_at_service": "90000"},
            follow_redirects=True,
        )
        text = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "Dados inválidos" in text
        assert "31/12/2024" in text
        rows, _ = backend.select("maintenance_records")
        assert rows == []

    def test_projection_with_malformed_date(self, signed_in, car_id):
        response = signed_in.get(
            f"/cars/{car_id}/maintenance/projection",
            query_string={"maintenance_type_id": "oleo-motor", "date_performed": "2024-13-01"},
        )
        assert response.status_code == 400
        assert "Dados inválidos" in response.get_data(as_text=True)

    def test_dashboard_lists_overdue(self, signed_in, car_id):
        signed_in.post(
            f"/cars/{car_id}/maintenance",
            data={"maintenance_type_id": "bateria", "date_performed": "2020-01-15", "mileage_at_service": "50000"},
        )
        text = signed_in.get("/").get_data(as_text=True)
        assert "Manutenções Atrasadas" in text
        assert "Bateria" in text


class TestFuel:
    """Tests for the fuel pages."""

    def test_create_and_stats(self, signed_in, car_id, backend):
        for day, mileage, liters in (("01", "90000", "38"), ("15", "90500", "40")):
            signed_in.post(
                f"/cars/{car_id}/fuel",
                data={
                    "date_filled": f"2024-04-{day}",
                    "mileage": mileage,
                    "liters": liters,
                    "cost_per_liter": "5",
                    "is_full_tank": "on",
                    "last_edited": "cost_per_liter",
                },
            )
        text = signed_in.get(f"/cars/{car_id}/fuel").get_data(as_text=True)
        assert "12.5 km/L" in text
        assert "R$ 390,00" in text

    def test_total_cost_edited_last(self, signed_in, car_id, backend):
        signed_in.post(
            f"/cars/{car_id}/fuel",
            data={
                "date_filled": "2024-04-01",
                "mileage": "90000",
                "liters": "40",
                "total_cost": "180",
                "last_edited": "total_cost",
            },
        )
        rows, _ = backend.select("fuel_records")
        assert rows[0]["cost_per_liter"] == 4.5
        assert rows[0]["is_full_tank"] is False


    def test_malformed_date_is_rejected(self, signed_in, car_id, backend):
        response = signed_in.post(
            f"/cars/{car_id}/fuel",
            data={"date_filled": "ontem", "mileage": "90000", "liters": "40", "cost_per_liter": "5"},
            follow_redirects=True,
        )
        assert "Dados inválidos" in response.get_data(as_text=True)
        rows, _ = backend.select("fuel_records")
        assert rows == []


class TestCatalog:
    """Tests for the catalog JSON endpoints."""

    def test_brands(self, signed_in):
        assert signed_in.get("/catalog/brands").get_json() == [{"codigo": "59", "nome": "VW - VolksWagen"}]

    def test_upstream_failure(self, signed_in):
        response = signed_in.get("/catalog/brands/59/models")
        assert response.status_code == 502
        assert response.get_json() == {"error": "Erro ao buscar modelos FIPE"}

    def test_requires_login(self, client):
        assert client.get("/catalog/brands").status_code == 302


class RecordingBackend(YamlBackend):
    """Remembers which signed-in user each request acted as."""

    def __init__(self, filename):
        super().__init__(filename)
        self.users = []

    def for_session(self, session):
        self.users.append(session.email)
        return self


class RecordingIdentity(LocalIdentity):
    """Local accounts that can hand out expiring sessions."""

    def __init__(self, backend, pending=False, refresh_error=None):
        super().__init__(backend)
        self.pending = pending
        self.refresh_error = refresh_error
        self.refreshed = []
        self.signed_out = []

    def sign_up(self, email, password, full_name=None):
        result = super().sign_up(email, password, full_name)
        return SignUp(result.session, confirmation_pending=self.pending)

    def sign_out(self, session):
        self.signed_out.append(session.email)

    def refresh(self, session):
        self.refreshed.append(session.email)
        if self.refresh_error is not None:
            raise self.refresh_error
        return replace(session, access_token="fresh", expires_at=session.expires_at + 3600)


class TestSessions:
    """Tests for per-user sessions shared by one app."""

    @pytest.fixture
    def recording(self, tmp_path):
        return RecordingBackend(tmp_path / "data.yaml")

    def sign_up(self, app, email):
        client = app.test_client()
        client.post("/signup", data={"email": email, "password": "secret"})
        return client

    def test_each_request_acts_as_its_own_user(self, tmp_path, recording):
        app = make_app(tmp_path, recording, LocalIdentity(recording))
        ana = self.sign_up(app, "ana@example.com")
        bia = self.sign_up(app, "bia@example.com")
        ana.get("/")
        bia.get("/")
        ana.get("/cars")
        assert recording.users == ["ana@example.com", "bia@example.com", "ana@example.com"]

    def test_logout_signs_out_the_requesting_user(self, tmp_path, recording):
        identity = RecordingIdentity(recording)
        app = make_app(tmp_path, recording, identity)
        ana = self.sign_up(app, "ana@example.com")
        bia = self.sign_up(app, "bia@example.com")
        bia.post("/logout")
        assert identity.signed_out == ["bia@example.com"]
        assert ana.get("/").status_code == 200
        assert bia.get("/").status_code == 302

    def test_expired_session_is_refreshed(self, tmp_path, recording):
        identity = RecordingIdentity(recording)
        client = self.sign_up(make_app(tmp_path, recording, identity), "ana@example.com")
        with client.session_transaction() as cookie:
            cookie["auth"] = dict(cookie["auth"], access_token="old", refresh_token="rt", expires_at=1000)
        assert client.get("/").status_code == 200
        assert identity.refreshed == ["ana@example.com"]
        with client.session_transaction() as cookie:
            assert cookie["auth"]["access_token"] == "fresh"
            assert cookie["auth"]["expires_at"] == 4600
        # Still expired by the clock, so each request refreshes again
        client.get("/")
        assert len(identity.refreshed) == 2

    def test_failed_refresh_asks_to_sign_in(self, tmp_path, recording):
        identity = RecordingIdentity(recording, refresh_error=AuthError("Invalid Refresh Token"))
        client = self.sign_up(make_app(tmp_path, recording, identity), "ana@example.com")
        with client.session_transaction() as cookie:
            cookie["auth"] = dict(cookie["auth"], refresh_token="rt", expires_at=1000)
        response = client.get("/")
        assert response.headers["Location"].endswith("/login")
        assert "Sessão expirada" in client.get("/login").get_data(as_text=True)
        assert client.get("/").status_code == 302

    def test_signup_awaiting_confirmation(self, tmp_path, recording):
        identity = RecordingIdentity(recording, pending=True)
        client = make_app(tmp_path, recording, identity).test_client()
        response = client.post("/signup", data={"email": "ana@example.com", "password": "secret"})
        assert response.headers["Location"].endswith("/login")
        text = client.get("/login").get_data(as_text=True)
        assert "Confirme seu email para entrar." in text
        assert recording.users == []
