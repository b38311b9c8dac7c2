"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # CRM upstream
    crm_api_url: str = "https://transport.nexus-talent.eu/api/candidates"
    crm_token: str = ""

    # Rate limits (windows in milliseconds)
    rate_limit_application_max: int = 3
    rate_limit_application_window: int = 300_000
    rate_limit_lead_form_max: int = 5
    rate_limit_lead_form_window: int = 60_000
    rate_limit_sweep_interval: int = 300_000  # 0 disables the background sweep

    # Environment
    app_env: str = "production"  # "development" exposes CRM error text to the lead form

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_development(self) -> bool:
        return self.app_env.strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
