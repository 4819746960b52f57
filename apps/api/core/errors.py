"""
Taxonomía de errores de la API.
Cada categoría se traduce a un código HTTP en core.responses (EXCEPTION_STATUS_MAP).
"""

from typing import Any

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

DEFAULT_VALIDATION_MESSAGE = "The given data was invalid."

# Prefijos de `loc` que indican el origen del dato, no el campo
_LOC_SOURCES = frozenset({"body", "query", "path", "header", "cookie"})


class APIError(Exception):
    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class ValidationFailedError(APIError):
    """Error de validación con errores por campo: {"campo": ["mensaje", ...]}."""

    def __init__(
        self,
        message: str = DEFAULT_VALIDATION_MESSAGE,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        self.errors = errors or {}
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc: Any, message: str = DEFAULT_VALIDATION_MESSAGE) -> "ValidationFailedError":
        """
        Convierte un RequestValidationError de FastAPI o un ValidationError de pydantic.
        loc=("query", "limit") → "limit"; loc=("body", "user", "email") → "user.email"
        """
        return cls(message, field_errors(exc.errors()))


class EntityNotFoundError(APIError):
    pass


class AuthenticationError(APIError):
    pass


class AuthorizationError(APIError):
    pass


class InternalError(APIError):
    """Error genérico sin categoría (500) para respuestas de error interno sin excepción."""


def field_errors(raw_errors: list[dict[str, Any]]) -> dict[str, list[str]]:
    """Agrupa la lista de errores de pydantic por nombre de campo, conservando el orden."""
    grouped: dict[str, list[str]] = {}
    for error in raw_errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOC_SOURCES:
            loc = loc[1:]
        field = ".".join(loc) or "__root__"
        grouped.setdefault(field, []).append(str(error.get("msg", "")))
    return grouped


def exception_message(exc: BaseException) -> str:
    """Mensaje legible de una excepción (APIError.message o str(exc))."""
    message = getattr(exc, "message", None)
    if isinstance(message, str):
        return message
    if isinstance(exc, (RequestValidationError, ValidationError)):
        return DEFAULT_VALIDATION_MESSAGE
    return str(exc)
