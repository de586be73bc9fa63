"""Fulfillment names and worker identity tokens.

The SDM that plans a serverless deploy stamps the goal with a fulfillment
name; the worker that should run it recognises itself by finding its
identity token inside that name. Both sides derive the string from the same
parts, so they must agree on one convention:

==========================  =============================================
Configuration               Name / token
==========================  =============================================
local deploy                ``<sdm name>-serverless-deploy``
remote execution            ``<registration>-<stage>-serverless-deploy``
==========================  =============================================

On the scheduling side ``<registration>`` is the remote worker's
registration name; on the worker side it is the worker's own ``name``, so a
worker named ``team-y`` serving stage ``prod`` claims goals fulfilled by
``team-y-prod-serverless-deploy``.
"""

from __future__ import annotations

from pydantic import BaseModel

from sdm_serverless.core.settings import SdmSettings

REGISTRATION_SUFFIX = "serverless-deploy"


class RemoteExecution(BaseModel):
    """Route a goal to another SDM registration."""

    registration_name: str
    """Name of the remote SDM that runs this goal"""

    stage: str
    """Stage for this deployment (a friendly name)"""


def registration_name(
    settings: SdmSettings,
    remote_execution: RemoteExecution | None = None,
    suffix: str = REGISTRATION_SUFFIX,
) -> str:
    """Fulfillment name the scheduling SDM stamps on a goal."""
    if remote_execution is not None:
        return f"{remote_execution.registration_name}-{remote_execution.stage}-{suffix}"
    return f"{settings.name}-{suffix}"


def identity_token(
    settings: SdmSettings,
    stage: str | None = None,
    suffix: str = REGISTRATION_SUFFIX,
) -> str:
    """Token this worker looks for inside a goal's fulfillment name.

    ``stage`` falls back to ``settings.remote_stage``.
    """
    stage = stage or settings.remote_stage
    if stage:
        return f"{settings.name}-{stage}-{suffix}"
    return f"{settings.name}-{suffix}"
