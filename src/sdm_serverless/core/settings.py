"""Worker settings for sdm-serverless.

Configuration is explicit, validated and environment-driven. A single
:class:`SdmSettings` instance is built at startup and handed to the
dispatcher through its context object; nothing reads configuration from a
module-level global.

Environment variables use the ``SDM_`` prefix and nested fields use ``__``::

    SDM_NAME=team-x
    SDM_VERSION=1.4.0
    SDM_REMOTE_STAGE=prod
    SDM_GOAL_SIGNING__ENABLED=true

Examples:
    >>> from sdm_serverless.core.settings import SdmSettings
    >>> settings = SdmSettings(name="team-x", version="1.0.0")
    >>> settings.registration_name
    'team-x'
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoalSigningSettings(BaseModel):
    """Goal signing configuration handed to the signature verifier."""

    enabled: bool = False
    public_keys: list[str] = Field(default_factory=list)
    """PEM-encoded keys whose signatures are accepted"""


class SdmSettings(BaseSettings):
    """Settings for one SDM worker instance.

    Fields
    ──────
    name          : Name of this SDM registration (identity token base)
    version       : Version reported in progress-log framing
    registration  : Registration name used for provenance ownership checks
                    (defaults to ``name``)
    remote_stage  : Stage suffix when this worker serves a remote stage
    goal_signing  : Goal signing configuration
    cancelable    : Whether goals may be canceled through the ledger
    log_level     : Structlog log level
    log_format    : ``console`` or ``json``
    """

    model_config = SettingsConfigDict(
        env_prefix="SDM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Identity ─────────────────────────────────────────────────
    name: str = "sdm"
    version: str = "0.0.0"
    registration: str | None = None
    remote_stage: str | None = None

    # ── Goal handling ────────────────────────────────────────────
    goal_signing: GoalSigningSettings = Field(default_factory=GoalSigningSettings)
    cancelable: bool = True

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    @property
    def registration_name(self) -> str:
        """Registration recorded in goal provenance by this worker."""
        return self.registration or self.name
