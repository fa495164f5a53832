from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from container + optionally from files
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="dev", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="gstr3b_filing", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))

    # Infrastructure
    REDIS_URL: str = Field(
        default="redis://redis:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )

    # Draft store ("memory" or "redis")
    DRAFT_STORE_BACKEND: str = Field(default="memory", validation_alias=AliasChoices("DRAFT_STORE_BACKEND", "draft_store_backend"))
    DRAFT_KEY_PREFIX: str = Field(default="gstr3b:draft", validation_alias=AliasChoices("DRAFT_KEY_PREFIX", "draft_key_prefix"))
    # 0 = keep drafts until explicitly deleted
    DRAFT_TTL_SECONDS: int = Field(default=0, ge=0, validation_alias=AliasChoices("DRAFT_TTL_SECONDS", "draft_ttl_seconds"))

    # Filing backend ("local" issues ARNs in-process, "http" posts to a filing gateway)
    FILING_BACKEND: str = Field(default="local", validation_alias=AliasChoices("FILING_BACKEND", "filing_backend"))
    GST_FILING_BASE_URL: str = Field(default="https://sandbox.gst.example.com", validation_alias=AliasChoices("GST_FILING_BASE_URL", "gst_filing_base_url"))
    GST_FILING_API_KEY: str = Field(default="", validation_alias=AliasChoices("GST_FILING_API_KEY", "gst_filing_api_key"))
    GST_FILING_TIMEOUT: float = Field(default=30.0, gt=0, validation_alias=AliasChoices("GST_FILING_TIMEOUT", "gst_filing_timeout"))

    # ARN issuance
    ARN_MAX_ATTEMPTS: int = Field(default=20, ge=1, validation_alias=AliasChoices("ARN_MAX_ATTEMPTS", "arn_max_attempts"))


settings = Settings()
