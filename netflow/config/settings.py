"""
Application settings.

Loads configuration from environment variables and a TOML file
using pydantic-settings.

TOML layout:

    [polygon]
    rpc_url = "wss://polygon-mainnet.example/ws"

    [token]
    pol_address = "0x455e53cbb86018ac2b8092fdcd39d8444affc3f6"

    [exchanges]
    binance = ["0xf977814e90da44bfa03b6295a0616a897441acec"]

Environment variables override the file; nested values use a double
underscore (POLYGON__RPC_URL, TOKEN__POL_ADDRESS).
"""

import os

from loguru import logger
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from netflow.config.constants import (
    DEFAULT_API_HOST,
    DEFAULT_API_PORT,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DATABASE_URL,
    RECONNECT_BASE_DELAY,
    RECONNECT_JITTER_MAX,
    RECONNECT_MAX_DELAY,
    SUBSCRIBER_RESTART_DELAY,
)
from netflow.utils.exceptions import ConfigurationError
from netflow.utils.validation import normalize_wallet_address

CONFIG_FILE_ENV = "NETFLOW_CONFIG_FILE"


class PolygonSettings(BaseModel):
    """Chain RPC endpoint."""

    rpc_url: str

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Subscriptions need a websocket endpoint."""
        v = v.strip()
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("rpc_url must start with ws:// or wss://")
        return v


class TokenSettings(BaseModel):
    """Monitored token contract."""

    pol_address: str

    @field_validator("pol_address")
    @classmethod
    def validate_pol_address(cls, v: str) -> str:
        """Validate token contract address."""
        return normalize_wallet_address(v)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and TOML."""

    # Blockchain
    polygon: PolygonSettings
    token: TokenSettings

    # Exchange label -> monitored addresses.
    # Addresses are validated when registries are built.
    exchanges: dict[str, list[str]]

    # Database
    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False

    # HTTP API
    api_host: str = DEFAULT_API_HOST
    api_port: int = Field(
        default=DEFAULT_API_PORT, ge=1, le=65535, description="Netflow API port"
    )

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Subscription reconnect backoff (seconds)
    reconnect_base_delay: float = Field(default=RECONNECT_BASE_DELAY, gt=0)
    reconnect_max_delay: float = Field(default=RECONNECT_MAX_DELAY, gt=0)
    reconnect_jitter: float = Field(default=RECONNECT_JITTER_MAX, ge=0)

    # Supervisor
    restart_delay: float = Field(default=SUBSCRIBER_RESTART_DELAY, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment wins over the TOML file."""
        toml_file = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            file_secret_settings,
        )

    @field_validator("exchanges")
    @classmethod
    def validate_exchanges(
        cls, v: dict[str, list[str]]
    ) -> dict[str, list[str]]:
        """At least one exchange with at least one address."""
        if not v:
            raise ValueError("at least one exchange must be configured")
        for label, addresses in v.items():
            if not label.strip():
                raise ValueError("exchange label must not be empty")
            if not addresses:
                raise ValueError(f"exchange {label!r} has no addresses")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only async drivers are supported."""
        if not v.startswith(("sqlite+aiosqlite://", "postgresql+asyncpg://")):
            raise ValueError(
                "DATABASE_URL must start with sqlite+aiosqlite:// "
                "or postgresql+asyncpg://"
            )
        return v

    @model_validator(mode="after")
    def validate_reconnect_delays(self) -> "Settings":
        """Backoff cap must not be below the first delay."""
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError(
                "reconnect_max_delay must be >= reconnect_base_delay"
            )
        return self

    @property
    def rpc_url(self) -> str:
        return self.polygon.rpc_url

    @property
    def token_address(self) -> str:
        return self.token.pol_address

    @property
    def default_exchange(self) -> str:
        """First configured exchange label."""
        return next(iter(self.exchanges))


def load_settings(**overrides) -> Settings:
    """
    Load settings, turning validation failures into ConfigurationError.

    Args:
        **overrides: Explicit values (highest priority)

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If configuration is missing or invalid
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise ConfigurationError(f"Invalid configuration: {e}") from e
