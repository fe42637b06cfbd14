"""
Carga de configuración desde variables de entorno usando Pydantic.

Lee `.env` en desarrollo para poblar claves como SECRET_KEY, ADMIN_MASTER_KEY,
la URL de base de datos y los parámetros del verificador de tags.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Esquema de variables de entorno requeridas por la app."""
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    ADMIN_MASTER_KEY: str
    ADMIN_TOKEN_EXPIRE_DAYS: int = 30

    # Base de datos (Railway expone `DATABASE_URL` para Postgres)
    DATABASE_URL: str | None = None
    # Tiempo máximo de espera (s) para lecturas/escrituras del registro de tags
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Verificación
    VERIFY_MAX_RETRIES: int = 3
    DEFAULT_SCAN_LOCATION: str = "Web"
    # UIDs normalizados de demostración: se aceptan sin firma ni contador
    DEMO_TAG_IDS: list[str] = ["04AABBCCDDDEEFF", "04112233445566"]

    APP_VERSION: str = "2.0.0"

    class Config:
        env_file = ".env"

settings = Settings()
