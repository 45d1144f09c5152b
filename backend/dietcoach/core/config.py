from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    OPENAI_API_KEY: str
    AZURE_OPENAI_API_KEY: str | None = None
    AZURE_OPENAI_ENDPOINT: str | None = None
    AZURE_OPENAI_API_VERSION: str = "2024-10-21"
    DATABASE_URL: str = "sqlite+aiosqlite:///./coach.db"
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    CHAT_MODEL: str = "gpt-4.1"
    REASONING_MODEL: str = "o3-mini"
    MEMORY_CLASSIFIER_MODEL: str = "gpt-4.1"
    MEMORY_EXTRACT_MODEL: str = "gpt-4.1"
    OPENAI_MAX_COMPLETION_TOKENS: int = 2048
    MEMORY_CLASSIFY_MAX_TOKENS: int = 10
    MEMORY_EXTRACT_MAX_TOKENS: int = 200
    CHAT_MAX_STEPS: int = 5

    GUEST_MAX_MESSAGES_PER_DAY: int = 20
    REGULAR_MAX_MESSAGES_PER_DAY: int = 100

    RESUMABLE_STREAMS_ENABLED: bool = True
    STREAM_RESUME_WINDOW_SECONDS: int = 15
    BACKGROUND_SHUTDOWN_TIMEOUT: float = 10.0

    # IST (UTC+5:30)
    INTAKE_UTC_OFFSET_MINUTES: int = 330

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env")

@lru_cache
def get_settings():
    return Settings()
