"""
Estructura de respuesta estándar { status, message, result, errors }.
Todos los endpoints y exception handlers de la API deben pasar por
ResponseEnvelopeBuilder para garantizar coherencia en el formato de respuesta.

Fuera de producción (APP_ENV != "production") las respuestas de error
incluyen además un objeto `debug` con clase, fichero, línea y traza.
"""

import sys
import traceback
from collections.abc import Mapping
from typing import Any

import structlog
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from core.errors import (
    AuthenticationError,
    AuthorizationError,
    EntityNotFoundError,
    InternalError,
    ValidationFailedError,
    exception_message,
    field_errors,
)

PRODUCTION_ENV = "production"
DEFAULT_HEADERS: dict[str, str] = {"Content-Type": "application/json"}

# status.HTTP_422_* cambió de nombre entre versiones de Starlette
HTTP_UNPROCESSABLE = 422

# Orden significativo: gana la primera categoría que coincide, 500 si ninguna
EXCEPTION_STATUS_MAP: tuple[tuple[tuple[type[BaseException], ...], int], ...] = (
    ((ValidationFailedError, RequestValidationError, ValidationError), HTTP_UNPROCESSABLE),
    ((EntityNotFoundError,), status.HTTP_404_NOT_FOUND),
    ((AuthenticationError,), status.HTTP_401_UNAUTHORIZED),
    ((AuthorizationError,), status.HTTP_403_FORBIDDEN),
)

# Claves con las que los serializadores paginados envuelven la colección
_COLLECTION_KEYS = ("data", "items")


# ---------------------------------------------------------------------------
# Funciones puras
# ---------------------------------------------------------------------------


def build_envelope(
    status_code: int = status.HTTP_200_OK,
    message: str | None = None,
    result: Any = None,
    errors: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Envelope con las cuatro claves siempre presentes, en orden fijo."""
    return {
        "status": status_code,
        "message": message,
        "result": result,
        "errors": errors,
    }


def resolve_status_code(data: Mapping[str, Any], default: int) -> int:
    """
    Devuelve data["status"] solo si es un int real; si no, `default`.
    bool es subclase de int, por eso se excluye explícitamente.
    """
    value = data.get("status")
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def status_for_exception(exception: BaseException) -> int:
    for categories, status_code in EXCEPTION_STATUS_MAP:
        if isinstance(exception, categories):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _qualified_name(exc_type: type) -> str:
    if exc_type.__module__ == "builtins":
        return exc_type.__qualname__
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


def _frames(exception: BaseException) -> list[traceback.FrameSummary]:
    """
    Frames desde el traceback de la excepción. Una excepción que nunca se lanzó
    no tiene traceback: se usa la pila actual sin los frames de este módulo.
    """
    if exception.__traceback__ is not None:
        return traceback.extract_tb(exception.__traceback__)
    return [frame for frame in traceback.extract_stack() if frame.filename != __file__]


def debug_info(exception: BaseException) -> dict[str, Any]:
    """Clase, fichero y línea de origen, y traza completa de la excepción."""
    frames = _frames(exception)
    origin = frames[-1] if frames else None
    return {
        "exception": _qualified_name(type(exception)),
        "file": origin.filename if origin else None,
        "line": origin.lineno if origin else None,
        "trace": [
            {"file": frame.filename, "line": frame.lineno, "function": frame.name}
            for frame in frames
        ],
    }


def _unwrap_collection(payload: Any) -> Any:
    """{"data": [...], "meta": {...}} → [...]; cualquier otra forma se deja tal cual."""
    if isinstance(payload, Mapping):
        for key in _COLLECTION_KEYS:
            if key in payload:
                return payload[key]
    return payload


# ---------------------------------------------------------------------------
# Builder inyectable
# ---------------------------------------------------------------------------


class ResponseEnvelopeBuilder:
    """
    Construye las respuestas JSON de la API.
    Dependencias explícitas: el entorno (APP_ENV) y un logger structlog.
    Sin estado mutable: una instancia puede compartirse entre peticiones.
    """

    def __init__(self, app_env: str, logger: Any = None) -> None:
        self._app_env = app_env
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def debug_enabled(self) -> bool:
        # Comparación literal y sensible a mayúsculas: cualquier otro valor muestra debug
        return self._app_env != PRODUCTION_ENV

    # --- Primitivas ----------------------------------------------------------

    def respond(
        self,
        status_code: int,
        message: str | None = None,
        result: Any = None,
        errors: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> JSONResponse:
        return self.api_response(
            {"status": status_code, "message": message, "result": result, "errors": errors},
            status_code,
            headers,
        )

    def api_response(
        self,
        data: Mapping[str, Any],
        status_code: int = status.HTTP_200_OK,
        headers: Mapping[str, str] | None = None,
    ) -> JSONResponse:
        """
        Punto de entrada genérico a partir de un dict con claves opcionales
        status, message, result, errors y exception.
        Un data["status"] entero tiene prioridad sobre `status_code`.
        Cualquier fallo al construir o serializar se responde vía handle_exception.
        """
        status_code = resolve_status_code(data, status_code)
        try:
            content = build_envelope(
                status_code,
                data.get("message"),
                data.get("result"),
                data.get("errors"),
            )
            exception = data.get("exception")
            if self.debug_enabled and isinstance(exception, BaseException):
                content["debug"] = debug_info(exception)
            return self._json_response(content, status_code, headers)
        except Exception as exc:
            return self.handle_exception(exc)

    def _json_response(
        self,
        content: dict[str, Any],
        status_code: int,
        headers: Mapping[str, str] | None,
    ) -> JSONResponse:
        # Las cabeceras del llamador ganan sobre las por defecto, sin distinguir mayúsculas
        headers = dict(headers or {})
        overridden = {name.lower() for name in headers}
        merged = {name: value for name, value in DEFAULT_HEADERS.items() if name.lower() not in overridden}
        merged.update(headers)
        return JSONResponse(
            content=jsonable_encoder(content),
            status_code=status_code,
            headers=merged,
        )

    # --- Éxito ---------------------------------------------------------------

    def respond_success(self, data: Any = None, message: str = "") -> JSONResponse:
        return self.respond(status.HTTP_200_OK, message, data)

    def respond_created(self, data: Any = None, message: str = "") -> JSONResponse:
        return self.respond(status.HTTP_201_CREATED, message, data)

    def respond_no_content(self, message: str = "No Content Found") -> JSONResponse:
        """
        204 con el envelope en el cuerpo. Starlette no envía Content-Length en un 204
        y los servidores HTTP (uvicorn/h11) descartan el cuerpo: el cliente recibe b"".
        """
        return self.respond(status.HTTP_204_NO_CONTENT, message)

    def respond_with_resource(
        self,
        resource: Any,
        message: str | None = None,
        status_code: int = status.HTTP_200_OK,
        headers: Mapping[str, str] | None = None,
    ) -> JSONResponse:
        """`resource`: modelo pydantic, dataclass o dict; se serializa como objeto único."""
        return self.respond(status_code, message, resource, None, headers)

    def respond_with_resource_collection(
        self,
        collection: Any,
        message: str,
        status_code: int = status.HTTP_200_OK,
        headers: Mapping[str, str] | None = None,
    ) -> JSONResponse:
        """
        `collection`: lista de recursos o página serializada ({"data": [...], "meta": ...}
        o {"items": [...], "total": ...}). `result` contiene solo los elementos.
        """
        try:
            items = _unwrap_collection(jsonable_encoder(collection))
        except Exception as exc:
            return self.handle_exception(exc)
        return self.respond(status_code, message, items, None, headers)

    def respond_with_success(
        self,
        data: Any,
        message: str,
        status_code: int = status.HTTP_200_OK,
        headers: Mapping[str, str] | None = None,
    ) -> JSONResponse:
        return self.respond(status_code, message, {"data": data}, None, headers)

    # --- Errores -------------------------------------------------------------

    def respond_error(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error_code: int = 1,
        exception: BaseException | None = None,
    ) -> JSONResponse:
        return self.api_response(
            {
                "status": status_code,
                "message": message,
                "errors": {"error_code": error_code},
                "exception": exception,
            },
            status_code,
        )

    def respond_unauthorized(self, message: str = "Unauthorized") -> JSONResponse:
        return self.respond_error(message, status.HTTP_401_UNAUTHORIZED)

    def respond_forbidden(self, message: str = "Forbidden") -> JSONResponse:
        return self.respond_error(message, status.HTTP_403_FORBIDDEN)

    def respond_not_found(self, message: str = "Not Found") -> JSONResponse:
        return self.respond_error(message, status.HTTP_404_NOT_FOUND)

    def respond_internal_error(
        self,
        message: str = "Internal Error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: int = 1,
        exception: BaseException | None = None,
    ) -> JSONResponse:
        """
        Siempre adjunta `debug` fuera de producción: de `exception`, de la excepción
        que se está manejando en ese momento, o del punto de llamada (InternalError).
        """
        if exception is None:
            exception = sys.exc_info()[1] or InternalError(message)
        return self.respond_error(message, status_code, error_code, exception)

    def respond_validation_errors(self, exception: BaseException) -> JSONResponse:
        """
        Acepta ValidationFailedError ({"campo": [...]}) o errores de pydantic/FastAPI,
        cuyo método errors() se agrupa por campo.
        """
        errors = getattr(exception, "errors", None)
        if callable(errors):
            errors = field_errors(errors())
        return self.respond(
            HTTP_UNPROCESSABLE,
            exception_message(exception),
            None,
            errors,
        )

    # --- Excepciones ---------------------------------------------------------

    def handle_exception(self, exception: BaseException) -> JSONResponse:
        """
        Log de error + respuesta {status, message[, debug]}.
        El código sale de EXCEPTION_STATUS_MAP; sin cabeceras adicionales.
        """
        message = exception_message(exception)
        self._log_exception(exception, message)

        status_code = status_for_exception(exception)
        content: dict[str, Any] = {"status": status_code, "message": message}

        if self.debug_enabled:
            content["debug"] = debug_info(exception)

        return JSONResponse(content=content, status_code=status_code)

    def _log_exception(self, exception: BaseException, message: str) -> None:
        try:
            self._logger.error(
                "api.exception",
                message=message,
                exception_type=type(exception).__name__,
                exc_info=exception,
            )
        except Exception:
            # Un fallo del logger nunca debe impedir enviar la respuesta
            pass
