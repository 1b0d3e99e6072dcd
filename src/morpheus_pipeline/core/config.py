from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field

from morpheus_pipeline.core.constants import DeployProvider, ModelTier, ThinkingDepth

_TRUTHY = {"1", "true", "yes", "on"}


class ModelClientConfig(BaseModel):
    api_key: str | None = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    pro_model: str = "gemini-3-pro-preview"
    flash_model: str = "gemini-3-flash-preview"
    pro_thinking: ThinkingDepth = ThinkingDepth.MEDIUM
    flash_thinking: ThinkingDepth = ThinkingDepth.MEDIUM
    max_retries: int = Field(default=3, ge=0, le=10)
    initial_retry_delay: float = Field(default=2.0, ge=0.0)
    """Seconds before the first backoff retry; doubles on each further retry."""
    timeout: float = Field(default=120.0, gt=0.0, le=3600.0)
    byok: bool = False
    """Bring-your-own-key mode: paid key, rate-limit countdown suppressed."""

    def model_for(self, tier: ModelTier) -> str:
        return self.pro_model if tier == ModelTier.PRO else self.flash_model

    def thinking_for(self, tier: ModelTier) -> ThinkingDepth:
        return self.pro_thinking if tier == ModelTier.PRO else self.flash_thinking

    @classmethod
    def from_env(cls) -> ModelClientConfig:
        """Create a :class:`ModelClientConfig` from ``MORPHEUS_*`` environment variables.

        Reads the following env vars (all optional):

        * ``MORPHEUS_API_KEY`` (or ``GEMINI_API_KEY``) → ``api_key``
        * ``MORPHEUS_BASE_URL`` → ``base_url``
        * ``MORPHEUS_MAX_RETRIES`` → ``max_retries``
        * ``MORPHEUS_TIMEOUT`` → ``timeout`` (seconds)
        * ``MORPHEUS_BYOK`` → ``byok`` (``1``/``true``/``yes``/``on``)

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}

        api_key = os.environ.get("MORPHEUS_API_KEY") or os.environ.get("GEMINI_API_KEY")
        if api_key:
            kwargs["api_key"] = api_key

        base_url = os.environ.get("MORPHEUS_BASE_URL")
        if base_url:
            kwargs["base_url"] = base_url

        max_retries = os.environ.get("MORPHEUS_MAX_RETRIES")
        if max_retries:
            kwargs["max_retries"] = int(max_retries)

        timeout = os.environ.get("MORPHEUS_TIMEOUT")
        if timeout:
            kwargs["timeout"] = float(timeout)

        byok = os.environ.get("MORPHEUS_BYOK")
        if byok:
            kwargs["byok"] = byok.strip().lower() in _TRUTHY

        return cls(**kwargs)


class PipelineConfig(BaseModel):
    max_validation_retries: int = Field(default=2, ge=0, le=10)
    max_repair_iterations: int = Field(default=5, ge=0, le=20)
    deploy_providers: list[DeployProvider] = Field(
        default_factory=lambda: [DeployProvider.RAILWAY, DeployProvider.RENDER]
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Create a :class:`PipelineConfig` from the environment.

        * ``MORPHEUS_LOG_LEVEL`` → ``log_level``
        * ``MORPHEUS_DEPLOY_PROVIDERS`` → comma-separated provider list
        """
        kwargs: dict[str, Any] = {}

        log_level = os.environ.get("MORPHEUS_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        providers = os.environ.get("MORPHEUS_DEPLOY_PROVIDERS")
        if providers:
            kwargs["deploy_providers"] = [
                p.strip() for p in providers.split(",") if p.strip()
            ]

        return cls(**kwargs)
