import json
from typing import Annotated

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from soudan import __version__

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Soudan"
    app_version: str = __version__

    # Tenant settings
    domains: Annotated[list[str], NoDecode] = []
    testing: bool = False
    data_dir: str = "."

    # Page verification
    fetch_timeout_seconds: float = 10.0

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8080

    # Logging settings
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = SettingsConfigDict(
        env_prefix="SOUDAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("domains", mode="before")
    @classmethod
    def split_domains(cls, value):
        """Accept a comma-separated string or a JSON list for domains."""
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


settings = Settings()
