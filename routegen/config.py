"""
routegen — Application Configuration
======================================

What:  Centralized configuration using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads environment variables (or .env), validates
       types/ranges, and exposes a singleton `settings` object.
Who:   Imported by the app factory and by the middleware factories for their
       defaults (rate limit window, cache TTL).
When:  Loaded once at import time.

Groups:
    - Server:        host, port, CORS, log level
    - API surface:   base path the controller routers are mounted under
    - Documentation: spec/docs/swagger paths, document info, UI toggles,
                     discovery source (controllers_dir / routes_dir)
    - Middleware:    default rate-limit window and cache TTL
"""

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

if TYPE_CHECKING:
    from routegen.openapi.docs import DocsOptions

DEMO_CONTROLLERS_DIR = str(Path(__file__).parent / "demo" / "controllers")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults that run the bundled demo controllers.
    """

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Comma-separated CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── API Surface ───────────────────────────────────────────────────────
    # What: Prefix every controller router is mounted under, and the base
    # path written into the generated document. Both must agree.
    api_base_path: str = Field(default="/api/v1")

    # ── Documentation ─────────────────────────────────────────────────────
    docs_spec_path: str = Field(default="/api-docs")
    docs_path: str = Field(default="/docs")
    swagger_path: str = Field(default="/swagger")
    docs_title: str = Field(default="API Documentation")
    docs_version: str = Field(default="1.0.0")
    docs_description: str = Field(
        default="Auto-generated API documentation from controller decorators"
    )
    enable_swagger: bool = Field(default=True)
    enable_scalar: bool = Field(default=True)

    # Discovery source. controllers_dir wins over routes_dir; with neither,
    # prefixes are derived from the controllers already registered.
    controllers_dir: Optional[str] = Field(default=DEMO_CONTROLLERS_DIR)
    routes_dir: Optional[str] = Field(default=None)

    # ── Middleware Defaults ───────────────────────────────────────────────
    # Fixed-window rate limit: 100 requests per 15 minutes per client
    rate_limit_window_ms: int = Field(default=15 * 60 * 1000, ge=1000)
    rate_limit_max_requests: int = Field(default=100, ge=1)

    # Response cache TTL: 5 minutes
    cache_ttl_ms: int = Field(default=5 * 60 * 1000, ge=1)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def docs_options(self) -> "DocsOptions":
        """Build the documentation setup options from these settings."""
        from routegen.openapi.docs import DocsOptions

        return DocsOptions(
            spec_path=self.docs_spec_path,
            docs_path=self.docs_path,
            swagger_path=self.swagger_path,
            base_path=self.api_base_path,
            controllers_dir=self.controllers_dir,
            routes_dir=self.routes_dir,
            info={
                "title": self.docs_title,
                "version": self.docs_version,
                "description": self.docs_description,
            },
            enable_swagger=self.enable_swagger,
            enable_scalar=self.enable_scalar,
        )


# Singleton instance imported throughout the package
settings = Settings()
