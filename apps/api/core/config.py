"""
Configuración centralizada de la aplicación.
Lee todas las variables de entorno usando pydantic-settings.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Aplicación ----------------------------------------------------------
    APP_NAME: str = "API"

    # Cualquier valor distinto de "production" expone `debug` en los errores.
    # No se restringe a una lista cerrada: un valor desconocido cuenta como no-producción.
    APP_ENV: str = "production"

    # --- Logging -------------------------------------------------------------
    LOG_LEVEL: str = "INFO"

    # Logs en JSON; por defecto solo en producción
    LOG_JSON: bool | None = None

    # Orígenes CORS permitidos (cadena separada por comas)
    CORS_ORIGINS: str = "http://localhost:3000"

    # --- Propiedades calculadas ----------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def json_logs(self) -> bool:
        return self.is_production if self.LOG_JSON is None else self.LOG_JSON

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {allowed}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Instancia singleton de Settings, cacheada para evitar re-lecturas del .env."""
    return Settings()


# Exportación conveniente para importar directamente en otros módulos
settings: Settings = get_settings()
