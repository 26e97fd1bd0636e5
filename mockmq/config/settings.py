"""
Configuration management for the Mock MQ Manager.

This module provides configuration classes for all service settings with
environment variable support, validation, and deployment environment handling.
"""

from typing import Dict, Any, Optional, List
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_QUEUES = [
    "DEV.QUEUE.1",
    "DEV.QUEUE.RESPONSE",
    "TEST.REQUEST.QUEUE",
    "TEST.RESPONSE.QUEUE",
    "DEV.QUEUE.ERROR",
]


class MQConfig(BaseModel):
    """Queue manager simulation settings."""

    queue_manager: str = Field(
        default="MOCK_QM1",
        min_length=1,
        max_length=48,
        description="Name reported by the simulated queue manager"
    )
    version: str = Field(
        default="9.0.0.0 (Mock)",
        description="Version string reported by health checks"
    )
    platform: str = Field(
        default="MockMQ Server",
        description="Platform string reported by health checks"
    )

    # Queue defaults
    default_queues: List[str] = Field(
        default_factory=lambda: list(DEFAULT_QUEUES),
        description="Queues created when no persisted state defines any"
    )
    default_queue_max_depth: int = Field(
        default=10000,
        ge=1,
        description="Max depth of the default queues"
    )
    max_depth: int = Field(
        default=5000,
        ge=1,
        description="Max depth for queues created without an explicit limit"
    )
    default_queue: str = Field(
        default="DEV.QUEUE.1",
        description="Queue used by operations that do not name one"
    )

    # Imposter message processing
    poll_interval_ms: int = Field(
        default=1000,
        ge=10,
        description="Interval between polls of an imposter input queue"
    )
    processing_timeout_ms: int = Field(
        default=30000,
        ge=1,
        description="Upper bound for handling one inbound message"
    )
    imposters_file: Optional[str] = Field(
        default=None,
        description="JSON or YAML file with imposters created at startup"
    )

    @field_validator('default_queues')
    @classmethod
    def validate_default_queues(cls, v):
        """Validate default queue names."""
        for name in v:
            if not name or not name.strip():
                raise ValueError("Default queue names cannot be empty")
            if len(name) > 48:
                raise ValueError(f"Queue name '{name}' exceeds 48 characters")
        return v


class StorageConfig(BaseModel):
    """Snapshot persistence settings."""

    enabled: bool = Field(
        default=True,
        description="Persist queue state to disk"
    )
    state_dir: str = Field(
        default="data/mock-mq",
        description="Directory holding the state file"
    )
    state_file: str = Field(
        default="mock-mq-state.json",
        description="State file name"
    )
    snapshot_debounce_ms: int = Field(
        default=50,
        ge=0,
        description="Delay used to batch snapshot writes inside the event loop"
    )


class APIConfig(BaseModel):
    """FastAPI application configuration settings."""

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    port: int = Field(
        default=2525,
        ge=1024,
        le=65535,
        description="API server port"
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload in development"
    )

    # API metadata
    title: str = Field(
        default="Mock MQ Manager",
        description="API title"
    )
    description: str = Field(
        default="In-memory IBM MQ simulator with stub imposters for service virtualization",
        description="API description"
    )
    version: str = Field(
        default="1.0.0",
        description="API version"
    )

    # Documentation settings
    docs_url: str = Field(
        default="/docs",
        description="Swagger UI documentation URL"
    )
    openapi_url: str = Field(
        default="/openapi.json",
        description="OpenAPI schema URL"
    )

    # CORS settings
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )


class MonitoringConfig(BaseModel):
    """Logging and metrics configuration."""

    # Logging settings
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    structured_logging: bool = Field(
        default=True,
        description="Emit JSON log records"
    )

    # Metrics settings
    enable_metrics: bool = Field(
        default=True,
        description="Enable metrics collection"
    )
    high_utilization_percent: float = Field(
        default=80.0,
        gt=0,
        le=100,
        description="Queue utilization that triggers a depth warning"
    )


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Environment settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Component configurations
    mq: MQConfig = Field(
        default_factory=MQConfig,
        description="Queue manager configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Persistence configuration"
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="FastAPI configuration"
    )
    monitoring: MonitoringConfig = Field(
        default_factory=MonitoringConfig,
        description="Monitoring configuration"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_prefix": "MOCKMQ_",
        "extra": "ignore"
    }

    @model_validator(mode='after')
    def validate_environment_specific_settings(self):
        """Apply environment-specific configuration overrides."""
        if self.environment == Environment.DEVELOPMENT:
            self.api.reload = True
            self.monitoring.log_level = LogLevel.DEBUG
            self.debug = True

        elif self.environment == Environment.TESTING:
            self.monitoring.log_level = LogLevel.WARNING
            self.monitoring.enable_metrics = False
            self.debug = False

        elif self.environment == Environment.PRODUCTION:
            self.api.reload = False
            self.monitoring.log_level = LogLevel.INFO
            self.debug = False

        return self

    def get_state_file_path(self) -> str:
        """Get the full path of the persisted state file."""
        return f"{self.storage.state_dir.rstrip('/')}/{self.storage.state_file}"

    def get_api_base_url(self) -> str:
        """Get API base URL."""
        return f"http://{self.api.host}:{self.api.port}"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return self.model_dump(mode='json')


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment variables and files.

    Only the module global in ``mockmq.config.settings`` is rebound. Names
    bound earlier with ``from mockmq.config import settings`` keep the old
    instance; call ``get_settings()`` to see the reloaded one.
    """
    global settings
    settings = Settings()
    return settings
