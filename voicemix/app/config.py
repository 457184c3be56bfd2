import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, List
from urllib.parse import urlsplit

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from voicemix.app.core.errors import ConfigurationError

DEFAULT_STORE_DOMAIN = "r2.cloudflarestorage.com"


class Settings(BaseSettings):
    # Cloudflare R2 (any S3-compatible endpoint works)
    r2_endpoint: str = Field(
        "",
        validation_alias=AliasChoices("R2_ENDPOINT", "R2_ENDPOINT_URL"),
    )
    r2_bucket_name: str = Field(
        "",
        validation_alias=AliasChoices("R2_BUCKET_NAME", "R2_BUCKET"),
    )
    r2_account_id: str = Field("", validation_alias=AliasChoices("R2_ACCOUNT_ID"))
    r2_access_key_id: str = Field(
        "",
        validation_alias=AliasChoices("R2_ACCESS_KEY_ID", "R2_ACCESS_KEY"),
    )
    r2_secret_access_key: str = Field(
        "",
        validation_alias=AliasChoices("R2_SECRET_ACCESS_KEY", "R2_SECRET_KEY"),
    )
    r2_region: str = Field("auto", validation_alias=AliasChoices("R2_REGION"))
    # Host suffix of the native virtual-hosted public URL pattern
    r2_public_domain: str = Field(
        DEFAULT_STORE_DOMAIN,
        validation_alias=AliasChoices("R2_PUBLIC_DOMAIN"),
    )

    # Render pipeline
    signed_url_ttl_sec: int = Field(600, validation_alias=AliasChoices("SIGNED_URL_TTL_SEC"))
    mix_timeout_sec: float = Field(600.0, validation_alias=AliasChoices("MIX_TIMEOUT_SEC"))
    ffmpeg_bin: str = Field("ffmpeg", validation_alias=AliasChoices("FFMPEG_BIN"))

    # HTTP
    port: int = Field(10000, validation_alias=AliasChoices("PORT"))
    # Comma-separated (https://a.com,https://b.com) or a JSON list
    cors_allow_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS"),
    )
    max_upload_bytes: int = Field(
        20 * 1024 * 1024,
        validation_alias=AliasChoices("MAX_UPLOAD_BYTES"),
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("["):
                return json.loads(raw)
            return [item.strip() for item in raw.split(",") if item.strip()] or ["*"]
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@dataclass(frozen=True)
class StorageConfig:
    """Validated object store settings, checked once when the store is built."""

    endpoint: str
    bucket: str
    account_id: str
    access_key_id: str
    secret_access_key: str
    region: str = "auto"
    store_domain: str = DEFAULT_STORE_DOMAIN

    def __post_init__(self) -> None:
        problems = []
        for field_name, env_name in (
            ("endpoint", "R2_ENDPOINT"),
            ("bucket", "R2_BUCKET_NAME"),
            ("account_id", "R2_ACCOUNT_ID"),
            ("access_key_id", "R2_ACCESS_KEY_ID"),
            ("secret_access_key", "R2_SECRET_ACCESS_KEY"),
        ):
            if not (getattr(self, field_name) or "").strip():
                problems.append(f"{env_name} is not set")
        if self.endpoint:
            parts = urlsplit(self.endpoint)
            if parts.scheme not in {"http", "https"} or not parts.hostname:
                problems.append(f"R2_ENDPOINT is not a valid http(s) URL: {self.endpoint!r}")
        if not (self.store_domain or "").strip(". "):
            problems.append("R2_PUBLIC_DOMAIN is empty")
        if problems:
            raise ConfigurationError("Storage is not configured", problems=problems)
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))
        object.__setattr__(self, "store_domain", self.store_domain.strip(". "))

    @property
    def endpoint_host(self) -> str:
        return urlsplit(self.endpoint).hostname or ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            endpoint=settings.r2_endpoint.strip(),
            bucket=settings.r2_bucket_name.strip(),
            account_id=settings.r2_account_id.strip(),
            access_key_id=settings.r2_access_key_id.strip(),
            secret_access_key=settings.r2_secret_access_key.strip(),
            region=settings.r2_region or "auto",
            store_domain=settings.r2_public_domain or DEFAULT_STORE_DOMAIN,
        )
