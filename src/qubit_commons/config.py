from __future__ import annotations

from typing import ClassVar, final

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hash prefixes accepted by ``bcrypt.gensalt``.
SUPPORTED_BCRYPT_VERSIONS = ("2a", "2b")

_PRODUCTION_MIN_BCRYPT_STRENGTH = 10


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    log_level: str = "INFO"

    # bcrypt work factor: log2 of the key expansion rounds.
    bcrypt_strength: int = Field(default=10, ge=4, le=31)
    # Hash prefix written by new hashes; existing hashes of any version still verify.
    bcrypt_version: str = "2a"

    # Validate production settings early to fail fast on weak defaults.
    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":  # pyright: ignore[reportUnusedFunction]
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        if self.bcrypt_strength < _PRODUCTION_MIN_BCRYPT_STRENGTH:
            errors.append(
                f"BCRYPT_STRENGTH must be at least {_PRODUCTION_MIN_BCRYPT_STRENGTH} in production"
            )

        if self.bcrypt_version not in SUPPORTED_BCRYPT_VERSIONS:
            errors.append(
                "BCRYPT_VERSION must be one of " + ", ".join(SUPPORTED_BCRYPT_VERSIONS)
            )

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        if self.bcrypt_strength < _PRODUCTION_MIN_BCRYPT_STRENGTH:
            warnings.append(
                f"BCRYPT_STRENGTH={self.bcrypt_strength} is below the recommended "
                f"{_PRODUCTION_MIN_BCRYPT_STRENGTH}; only use it for tests."
            )
        if self.bcrypt_version not in SUPPORTED_BCRYPT_VERSIONS:
            warnings.append(f"BCRYPT_VERSION={self.bcrypt_version!r} is not supported by bcrypt.")
        return warnings


settings = Settings()
