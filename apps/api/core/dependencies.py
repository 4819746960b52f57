"""
Dependencias inyectables de FastAPI.
Uso: añadir como parámetro en la firma del endpoint con Depends().
"""

from fastapi import Depends

from core.config import Settings, get_settings
from core.responses import ResponseEnvelopeBuilder


def get_responder(settings: Settings = Depends(get_settings)) -> ResponseEnvelopeBuilder:
    """Builder de respuestas configurado con el APP_ENV actual."""
    return ResponseEnvelopeBuilder(app_env=settings.APP_ENV)
