"""Configuration management for the Library Lending MCP Server.

Settings are loaded from ``LIBRARY_LENDING_*`` environment variables (or a
``.env`` file) and validated with Pydantic v2. Besides server metadata and the
database location, this is where the lending policy lives:

1. Allowed reservation periods (exactly 7, 14 or 21 days)
2. Maximum number of renewals per reservation
3. Maximum concurrent outstanding reservations per member
4. The "due soon" window used by the member dashboard
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RESERVATION_PERIODS: tuple[int, ...] = (7, 14, 21)


class ServerConfig(BaseSettings):
    """Server and lending-policy configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_LENDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="library-lending",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/lending.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    database_busy_timeout: float = Field(
        default=15.0,
        description="Seconds a SQLite writer waits for the database lock",
        gt=0,
    )

    # === Transport Configuration ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    # === Lending Policy ===

    allowed_reservation_days: tuple[int, ...] = Field(
        default=RESERVATION_PERIODS,
        description="Reservation periods a member may choose from, in days",
    )

    max_renewals: int = Field(
        default=1,
        description="How many times a single reservation may be renewed",
        ge=0,
    )

    max_active_reservations: int | None = Field(
        default=None,
        description="Outstanding (active or overdue) reservations per member; None is unbounded",
        ge=1,
    )

    due_soon_threshold_days: int = Field(
        default=7,
        description="Reservations due within this many days count as 'due soon'",
        ge=0,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    # === Validation Methods ===

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the database path and make sure its directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @field_validator("allowed_reservation_days")
    @classmethod
    def validate_allowed_reservation_days(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        """Reservation periods are fixed to 7, 14 and 21 days.

        A deployment may offer a subset of them, but never a period the
        catalog clients cannot display.
        """
        if not v:
            raise ValueError("At least one reservation period must be allowed")
        unknown = sorted(set(v) - set(RESERVATION_PERIODS))
        if unknown:
            raise ValueError(
                f"Unsupported reservation periods {unknown}; choose from {list(RESERVATION_PERIODS)}"
            )
        return tuple(sorted(set(v)))

    # === Derived Values ===

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = ServerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
