"""
Exception handlers globales — mantienen el formato { status, message, result, errors }.
Ningún error escapa sin envelope; el `debug` solo aparece fuera de producción.
"""

from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import APIError, ValidationFailedError
from core.responses import ResponseEnvelopeBuilder


def register_exception_handlers(
    app: FastAPI,
    responder_factory: Callable[[], ResponseEnvelopeBuilder],
) -> None:
    """
    Registra los handlers sobre la aplicación.
    `responder_factory` se invoca en cada error, así el entorno se lee por petición.
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        return responder_factory().handle_exception(exc)

    # Más específico que APIError: conserva los errores por campo
    @app.exception_handler(ValidationFailedError)
    async def validation_failed_handler(
        request: Request, exc: ValidationFailedError
    ) -> JSONResponse:
        return responder_factory().respond_validation_errors(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return responder_factory().respond_validation_errors(ValidationFailedError.from_pydantic(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        # Un detail no textual (dict, lista) se conserva en errors
        if isinstance(exc.detail, str):
            message, errors = exc.detail, None
        else:
            message, errors = None, {"detail": exc.detail}
        return responder_factory().respond(
            exc.status_code,
            message,
            errors=errors,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        return responder_factory().handle_exception(exc)
