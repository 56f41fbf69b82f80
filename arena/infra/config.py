"""Application configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///./arena.db"
    db_auto_create: bool = True  # create tables on startup; disable when Alembic owns the schema

    # LLM
    llm_provider: str = "mock"  # "openai" | "anthropic" | "mock"
    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 120.0

    # Agent step budget per encounter run
    agent_max_steps: int = 100
    # Seconds live runs get to finish at shutdown before being cancelled
    run_shutdown_timeout_seconds: float = 30.0

    # Auth / JWT
    jwt_secret_key: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440  # 24 hours
    default_user_role: str = "player"  # "admin" | "player" | "spectator"

    # Default admin, created on startup when username is set
    default_admin_username: str = ""
    default_admin_password: str = ""
    default_admin_email: str | None = None

    # App
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def database_url_sync(self) -> str:
        """Sync version of database_url for Alembic CLI."""
        return self.database_url.replace("+aiosqlite", "").replace("+asyncpg", "")


settings = Settings()
