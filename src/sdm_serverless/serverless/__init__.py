"""Serverless.com deploy goal, its executor and the extension pack installing it."""

from sdm_serverless.serverless.deploy import (
    SERVERLESS_GOAL,
    ServerlessDeploy,
    ServerlessDeployDetails,
    find_serverless_config,
    parse_dashboard_url,
    serverless_deploy,
    serverless_phase,
)
from sdm_serverless.serverless.extension import (
    ExtensionPack,
    ServerlessFulfillGoalOnRequested,
    serverless_support,
)
from sdm_serverless.serverless.process import ProcessResult, run_process

__all__ = [
    "SERVERLESS_GOAL",
    "ServerlessDeploy",
    "ServerlessDeployDetails",
    "find_serverless_config",
    "parse_dashboard_url",
    "serverless_deploy",
    "serverless_phase",
    "ExtensionPack",
    "ServerlessFulfillGoalOnRequested",
    "serverless_support",
    "ProcessResult",
    "run_process",
]
