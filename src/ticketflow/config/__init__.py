"""
Configuration Module
====================

Application settings and domain constants.

Settings are loaded from environment variables (and an optional ``.env``
file) using pydantic-settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="ticketflow", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/ticketflow",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    create_tables_on_startup: bool = Field(
        default=False,
        description="Create missing tables at startup (development only)"
    )

    # ========== SLA ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Optional YAML file overriding the default SLA table"
    )

    # ========== Tickets ==========
    bulk_update_max_ids: int = Field(
        default=100,
        description="Maximum number of tickets accepted by one bulk update",
        ge=1
    )
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Public frontend base URL (feedback survey links)"
    )
    webhook_secret: Optional[str] = Field(
        default=None,
        description="Shared secret expected on the inbound email webhook"
    )

    # ========== Email provider ==========
    email_api_url: str = Field(
        default="https://api.resend.com/emails",
        description="HTTP endpoint of the transactional email provider"
    )
    email_api_key: Optional[str] = Field(
        default=None,
        description="API key for the email provider"
    )
    email_from: str = Field(
        default="Support <support@example.com>",
        description="Sender address for outbound ticket emails"
    )
    email_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for email provider calls",
        ge=0.1,
        le=60
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketStatus(str):
    """Ticket lifecycle statuses."""
    NEW = "new"
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(str):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Channel(str):
    """Channels a ticket can arrive through."""
    WEB = "web"
    EMAIL = "email"


class TriggerEvent(str):
    """Events that workflows can subscribe to."""
    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"


class EmailStage(str):
    """Lifecycle email template stages."""
    CREATION = "creation"
    IN_PROGRESS = "inprogress"
    RESOLUTION = "resolution"
    CLOSURE = "closure"


class NotificationType(str):
    """In-app notification types."""
    ASSIGNMENT = "assignment"
    WORKFLOW = "workflow"


# ========== Lists for validation ==========

VALID_STATUSES = [
    TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.PENDING,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
VALID_PRIORITIES = [
    Priority.LOW, Priority.MEDIUM,
    Priority.HIGH, Priority.URGENT
]
