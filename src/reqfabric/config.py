# reqfabric/config.py
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import FailureHook, PostSendHook, PreSendHook, TimeoutHook

DEFAULT_HEADERS: dict[str, str] = {
    "Content-Type": "application/json;charset=UTF-8",
    "Accept": "application/json",
}


class PipelineSettings(BaseSettings):
    """
    Defaults and lifecycle hooks for one ``HttpPipeline``.

    Scalar settings can be loaded from ``REQFABRIC_``-prefixed environment
    variables or a .env file. Every field may be reassigned at any time; the
    pipeline reads the current value each time it needs it, so updating
    ``default_headers`` after a login takes effect on the next call.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REQFABRIC_",
        extra="ignore",
        case_sensitive=False,
        arbitrary_types_allowed=True,  # Allow hook callables
        validate_assignment=True,
    )

    # --- Dispatch Settings ---
    timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout applied to every dispatch, in seconds"
    )
    scheme: str = Field(
        default="https", description="URI scheme used when a request host has none"
    )

    # --- Defaults merged into every request ---
    default_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_HEADERS),
        description="Headers sent with every request; per-request headers win.",
    )
    default_params: dict[str, Any] = Field(
        default_factory=dict,
        description="Query parameters sent with every request; per-request values win.",
    )

    # --- Hook Settings ---
    pre_send: PreSendHook | None = Field(
        default=None,
        description="Called before sending; returning an HttpError vetoes the request.",
    )
    post_send: PostSendHook | None = Field(
        default=None,
        description="Called with the classified outcome of a completed exchange.",
    )
    on_timeout: TimeoutHook | None = Field(
        default=None, description="Called when a dispatch exceeds the timeout."
    )
    on_failure: FailureHook | None = Field(
        default=None,
        description="Called when an exception or fault short-circuits the pipeline.",
    )
