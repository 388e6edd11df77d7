from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    llm_api_key: str = ""
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "openai/gpt-4o"
    transcription_api_key: str = ""
    transcription_base_url: str | None = None
    transcription_model: str = "whisper-1"
    telegram_bot_token: str = ""
    db_path: str = "pocket_ledger.json"
    log_level: str = "INFO"

    currency_symbol: str = "$"
    decimal_separator: str = "."
    default_country_code: str = "55"

    # Turns sent to the model as context, and turns kept before compaction
    history_window: int = 5
    history_retention: int = 10


@lru_cache
def get_settings() -> Settings:
    return Settings()
