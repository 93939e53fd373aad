from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LOANFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite+aiosqlite:///./loanflow.db"
    redis_url: str = "redis://localhost:6379/0"
    cors_origins: str = "http://localhost:3000"

    # Background jobs are only emitted when a broker is actually configured.
    celery_enabled: bool = False

    # Recipient for workflow updates that nobody is assigned to.
    system_recipient: str = "SYSTEM"

    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_content_types: list[str] = ["application/pdf", "image/jpeg", "image/png"]
    storage_dir: str = "./var/documents"

    default_required_documents: list[str] = ["id_proof", "income_proof"]


settings = Settings()
