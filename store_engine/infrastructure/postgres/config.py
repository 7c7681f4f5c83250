#store_engine\infrastructure\postgres\config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class DatabaseSettings(BaseSettings):
    """Store database configuration (POSTGRES_* environment variables)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Connection; defaults match a local development database
    postgres_user: str = "store"
    postgres_password: str = "store"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "store"
    db_schema: str = "public"
    application_name: str = "store-engine"

    # Connection pool
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    echo_sql: bool = False

    @property
    def database_url(self) -> str:
        # URL.create escapes '@' and ':' in credentials
        return URL.create(
            "postgresql+psycopg2",
            username=self.postgres_user,
            password=self.postgres_password,
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_db,
        ).render_as_string(hide_password=False)


settings = DatabaseSettings()
