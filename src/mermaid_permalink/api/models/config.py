"""Configuration models for the API."""

from typing import List, Optional
from pydantic import BaseModel, Field
import os

DEFAULT_MERMAID_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class APIConfig(BaseModel):
    """API configuration settings."""

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8000, description="Port to bind to")
    public_base_url: Optional[str] = Field(
        default=None, description="Origin used in generated URLs; request origin when unset"
    )
    debug: bool = Field(default=False, description="Expose error details in responses")
    log_level: str = Field(default="INFO", description="Root log level")

    # Rendering
    render_timeout_seconds: float = Field(default=10.0, gt=0, description="Render timeout in seconds")
    mermaid_script_url: str = Field(default=DEFAULT_MERMAID_SCRIPT_URL, description="Mermaid.js bundle")
    mermaid_theme: str = Field(default="default", description="Mermaid theme name")
    viewport_width: int = Field(default=1200, gt=0, description="Browser viewport width")
    viewport_height: int = Field(default=800, gt=0, description="Browser viewport height")

    # Cache
    cache_backend: str = Field(default="memory", description="Cache store: memory or disk")
    cache_dir: str = Field(default="/tmp/mermaid_permalink", description="Disk cache directory")
    cache_max_age_seconds: int = Field(default=31536000, ge=86400, description="Freshness of rendered images")
    cache_max_entries: int = Field(default=1000, gt=0, description="Entry limit of the memory store")
    cache_purge_interval_seconds: int = Field(default=900, gt=0, description="Expired entry purge interval")
    single_flight: bool = Field(default=True, description="Coalesce concurrent renders of one key")

    # Security
    cors_origins: List[str] = Field(default=["*"], description="CORS allowed origins")

    @classmethod
    def from_env(cls) -> "APIConfig":
        """Create config from environment variables."""
        return cls(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8000")),
            public_base_url=os.getenv("PUBLIC_BASE_URL") or None,
            debug=_env_flag("DEBUG", "false"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            render_timeout_seconds=float(os.getenv("RENDER_TIMEOUT_SECONDS", "10")),
            mermaid_script_url=os.getenv("MERMAID_SCRIPT_URL", DEFAULT_MERMAID_SCRIPT_URL),
            mermaid_theme=os.getenv("MERMAID_THEME", "default"),
            viewport_width=int(os.getenv("VIEWPORT_WIDTH", "1200")),
            viewport_height=int(os.getenv("VIEWPORT_HEIGHT", "800")),
            cache_backend=os.getenv("CACHE_BACKEND", "memory"),
            cache_dir=os.getenv("CACHE_DIR", "/tmp/mermaid_permalink"),
            cache_max_age_seconds=int(os.getenv("CACHE_MAX_AGE_SECONDS", "31536000")),
            cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", "1000")),
            cache_purge_interval_seconds=int(os.getenv("CACHE_PURGE_INTERVAL_SECONDS", "900")),
            single_flight=_env_flag("SINGLE_FLIGHT", "true"),
            cors_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        )
