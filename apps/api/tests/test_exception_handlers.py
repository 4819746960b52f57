"""
Tests de los exception handlers globales.
Se monta una app FastAPI mínima con rutas que lanzan cada tipo de error.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from core.errors import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    EntityNotFoundError,
    ValidationFailedError,
)
from core.exception_handlers import register_exception_handlers
from core.responses import ResponseEnvelopeBuilder

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_app(app_env: str = "development") -> FastAPI:
    app = FastAPI()
    register_exception_handlers(
        app, lambda: ResponseEnvelopeBuilder(app_env=app_env, logger=MagicMock())
    )

    @app.get("/accounts/{account_id}")
    async def get_account(account_id: int):
        raise EntityNotFoundError(f"Account {account_id} not found")

    @app.get("/me")
    async def me():
        raise AuthenticationError("Token caducado")

    @app.get("/admin")
    async def admin():
        raise AuthorizationError("Forbidden")

    @app.post("/signup")
    async def signup():
        raise ValidationFailedError("Datos inválidos", {"email": ["Email ya registrado"]})

    @app.get("/items")
    async def list_items(limit: int):
        return {"limit": limit}

    @app.get("/login")
    async def login():
        raise HTTPException(
            status_code=401,
            detail="Contraseña incorrecta",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.post("/orders")
    async def create_order():
        raise HTTPException(status_code=409, detail={"sku": "duplicado"})

    @app.get("/crash")
    async def crash():
        raise RuntimeError("boom")

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(make_app(), raise_server_exceptions=False)


@pytest.fixture
def prod_client() -> TestClient:
    return TestClient(make_app("production"), raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# Tests: errores de aplicación
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("method", "path", "status_code", "message"),
    [
        ("get", "/accounts/7", 404, "Account 7 not found"),
        ("get", "/me", 401, "Token caducado"),
        ("get", "/admin", 403, "Forbidden"),
    ],
)
def test_api_errors_map_to_table_status(client, method, path, status_code, message):
    response = getattr(client, method)(path)
    payload = response.json()

    assert response.status_code == status_code
    assert payload["status"] == status_code
    assert payload["message"] == message
    assert "debug" in payload


def test_validation_failed_keeps_field_errors(client, prod_client):
    for http in (client, prod_client):
        response = http.post("/signup")
        assert response.status_code == 422
        assert response.json() == {
            "status": 422,
            "message": "Datos inválidos",
            "result": None,
            "errors": {"email": ["Email ya registrado"]},
        }


def test_api_error_in_production_hides_debug(prod_client):
    response = prod_client.get("/accounts/7")
    assert response.status_code == 404
    assert response.json() == {"status": 404, "message": "Account 7 not found"}


def test_debug_points_to_raising_route(client):
    debug = client.get("/me").json()["debug"]
    assert debug["exception"] == "core.errors.AuthenticationError"
    assert debug["file"] == __file__
    assert debug["trace"][-1]["function"] == "me"


# ---------------------------------------------------------------------------
# Tests: validación de la petición
# ---------------------------------------------------------------------------


def test_request_validation_uses_envelope(client):
    response = client.get("/items", params={"limit": "abc"})
    payload = response.json()

    assert response.status_code == 422
    assert list(payload) == ["status", "message", "result", "errors"]
    assert payload["message"] == "The given data was invalid."
    assert list(payload["errors"]) == ["limit"]


def test_missing_query_param_is_reported_by_field(client):
    payload = client.get("/items").json()
    assert payload["status"] == 422
    assert "limit" in payload["errors"]


# ---------------------------------------------------------------------------
# Tests: HTTPException y errores inesperados
# ---------------------------------------------------------------------------


def test_http_exception_keeps_status_and_headers(client):
    response = client.get("/login")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json() == {
        "status": 401,
        "message": "Contraseña incorrecta",
        "result": None,
        "errors": None,
    }


def test_http_exception_non_string_detail_goes_to_errors(client):
    response = client.post("/orders")

    assert response.status_code == 409
    assert response.json() == {
        "status": 409,
        "message": None,
        "result": None,
        "errors": {"detail": {"sku": "duplicado"}},
    }


def test_unknown_route_uses_envelope(client):
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json()["message"] == "Not Found"


def test_unhandled_exception_is_500(client):
    response = client.get("/crash")
    payload = response.json()

    assert response.status_code == 500
    assert payload["message"] == "boom"
    assert payload["debug"]["exception"] == "RuntimeError"


def test_unhandled_exception_in_production(prod_client):
    response = prod_client.get("/crash")
    assert response.status_code == 500
    assert response.json() == {"status": 500, "message": "boom"}


async def test_handler_can_be_awaited_directly():
    app = make_app()
    handler = app.exception_handlers[APIError]
    response = await handler(MagicMock(), EntityNotFoundError("missing"))
    assert response.status_code == 404
