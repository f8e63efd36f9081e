"""
Configuracion central de la aplicacion.
Gestiona variables de entorno para el sync de Airtable, el servidor HTTP
y el logging. Se lee del entorno y de un archivo .env si existe.
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


TRUTHY_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Credenciales de Airtable:
    - AIRTABLE_TOKEN / AIRTABLE_BASE_ID
    - Se aceptan tambien VITE_AIRTABLE_TOKEN / VITE_AIRTABLE_BASE_ID
      (las mismas variables que usa el build del sitio)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Portfolio Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Airtable
    AIRTABLE_TOKEN: str = Field(default="")
    AIRTABLE_BASE_ID: str = Field(default="")
    VITE_AIRTABLE_TOKEN: str = Field(default="")
    VITE_AIRTABLE_BASE_ID: str = Field(default="")
    AIRTABLE_API_URL: str = Field(default="https://api.airtable.com/v0")
    AIRTABLE_TIMEOUT_S: int = Field(default=30)
    AIRTABLE_MAX_RETRIES: int = Field(default=6)
    AIRTABLE_LAST_MOD_FIELD: str = Field(default="Last Modified")

    # Sync
    OUTPUT_DIR: str = Field(default="public")
    PORTFOLIO_MODE: str = Field(default="directing")
    FORCE_FULL_SYNC: bool = Field(default=False)
    # En entornos serverless el filesystem es efimero: se puede omitir la escritura
    SYNC_SKIP_FILE_WRITES: bool = Field(default=False)
    # Si esta definido, el endpoint HTTP exige "Authorization: Bearer <SYNC_TOKEN>"
    SYNC_TOKEN: str = Field(default="")
    SYNC_MAX_WORKERS: int = Field(default=5)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="")

    @computed_field
    @property
    def effective_airtable_token(self) -> str:
        """Token efectivo: AIRTABLE_TOKEN o, si no esta, VITE_AIRTABLE_TOKEN."""
        return self.AIRTABLE_TOKEN or self.VITE_AIRTABLE_TOKEN

    @computed_field
    @property
    def effective_airtable_base_id(self) -> str:
        """Base ID efectiva: AIRTABLE_BASE_ID o, si no esta, VITE_AIRTABLE_BASE_ID."""
        return self.AIRTABLE_BASE_ID or self.VITE_AIRTABLE_BASE_ID

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


def is_truthy(value: str | None) -> bool:
    """Interpreta flags de entorno tipo FORCE_FULL_SYNC=true."""
    return (value or "").strip().lower() in TRUTHY_VALUES


# Instancia global de configuracion
settings = Settings()
