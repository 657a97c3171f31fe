"""
Configuration management for the graphgate gateway.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from graphgate.core.errors import ConfigurationError

ENVIRONMENTS = ("development", "staging", "production", "testing")
ENVIRONMENT_ALIASES = {"dev": "development", "stage": "staging", "prod": "production", "test": "testing"}
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Gateway settings, read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: str = Field(default="development", description="Deployment environment")
    debug: bool = Field(default=False, description="Debug mode")

    # Application
    app_name: str = "graphgate"
    app_version: str = "0.1.0"
    graphql_path: str = Field(default="/api/graphql", description="Path the GraphQL endpoint is mounted on")

    # Document database
    mongo_uri: str = Field(description="MongoDB connection string (MONGO_URI)")
    mongo_database: Optional[str] = Field(
        default=None,
        description="Database name (defaults to the one in the connection string)"
    )
    mongo_connect_timeout_ms: int = Field(default=5000, ge=100, le=60000)
    request_timeout_seconds: float = Field(default=10.0, gt=0, le=300)

    # HTTP server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    trust_proxy: bool = Field(default=True, description="Honour X-Forwarded-For for the client address")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed to call the GraphQL endpoint"
    )
    cors_allow_credentials: bool = Field(default=True)

    # Security
    jwt_secret_key: str = Field(
        default="change-me",
        description="Secret key used to verify bearer tokens"
    )
    jwt_algorithm: str = Field(default="HS256")

    # Errors
    mask_errors: Optional[bool] = Field(
        default=None,
        description="Hide unexpected error messages from clients (defaults to on in production)"
    )

    # Observability
    log_level: str = Field(default="INFO")

    @field_validator("environment")
    def validate_environment(cls, v: str) -> str:
        v = v.strip().lower()
        v = ENVIRONMENT_ALIASES.get(v, v)
        if v not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {list(ENVIRONMENTS)}, got {v!r}")
        return v

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(LOG_LEVELS)}, got {v!r}")
        return v

    @field_validator("mongo_uri")
    def validate_mongo_uri(cls, v: str) -> str:
        """Reject blank connection strings."""
        if not v.strip():
            raise ValueError("mongo_uri must not be empty")
        return v.strip()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def introspection_enabled(self) -> bool:
        """Introspection and the interactive explorer are off in production."""
        return not self.is_production

    @property
    def graphql_ide(self) -> Optional[str]:
        """IDE served on GET requests to the GraphQL path."""
        return "graphiql" if self.introspection_enabled else None

    @property
    def should_mask_errors(self) -> bool:
        """Whether unexpected resolver errors are redacted in responses."""
        if self.mask_errors is None:
            return self.is_production
        return self.mask_errors


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment.

    Raises:
        ConfigurationError: If the required connection string is missing or
            any value fails validation
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        for error in e.errors():
            if error.get("loc") == ("mongo_uri",) and error.get("type") == "missing":
                raise ConfigurationError("MONGO_URI env variable is not defined") from e
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache()
def get_settings() -> Settings:
    """Settings for the running process, loaded on first use."""
    return load_settings()
