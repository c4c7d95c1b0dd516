from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    supabase_url: str
    database_url: str
    direct_database_url: str = ""
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Ledger and user directory calls are aborted after this many seconds
    collaborator_timeout_seconds: float = 5.0
    user_search_min_length: int = 2
    user_search_limit: int = 20


settings = Settings()
