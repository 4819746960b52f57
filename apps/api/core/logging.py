"""
Configuración de structlog para toda la aplicación.
Los módulos obtienen su logger con structlog.get_logger(__name__) y emiten
eventos con nombre "modulo.accion" más contexto clave-valor.
NUNCA loguear cuerpos de petición ni secretos.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configura structlog: filtrado por nivel, timestamp ISO y renderer JSON o consola."""
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        # ConsoleRenderer ya formatea las excepciones por su cuenta
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=False,
    )
