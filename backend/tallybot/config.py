from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_file": "../.env",
        "extra": "ignore",
        "env_prefix": "",
        "case_sensitive": False,
    }

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_timeout_ms: int = 8000

    # Telegram
    telegram_bot_token: str = ""
    telegram_api_base: str = "https://api.telegram.org"
    allowed_user_ids: str = ""  # comma-separated; empty = everyone

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def allowed_user_id_set(self) -> set[int]:
        ids: set[int] = set()
        for fragment in self.allowed_user_ids.split(","):
            fragment = fragment.strip()
            if fragment.lstrip("-").isdigit():
                ids.add(int(fragment))
        return ids


settings = Settings()
