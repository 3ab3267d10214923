"""
Client Configuration.

Defaults for the `Logging` client and the `Log` handles it creates.
See https://cloud.google.com/logging/quotas for the service-side entry size limit.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Logging client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    project_id: Optional[str] = Field(
        default=None,
        description="Project ID; resolved from Application Default Credentials when unset",
    )
    max_retries: Optional[int] = Field(
        default=None,
        ge=0,
        description="Default retry count forwarded to the transport when a call sets none",
    )
    retry_backoff: float = Field(default=0.5, gt=0, description="Base backoff seconds between transport retries")

    # Per-log defaults
    max_entry_size: Optional[int] = Field(default=None, gt=0, description="Maximum serialized entry size in bytes")
    remove_circular: bool = Field(default=False, description="Replace circular references with '[Circular]'")
    json_fields_to_truncate: list[str] = Field(
        default_factory=list,
        description="Extra jsonPayload field paths to shrink before the built-in ones",
    )
