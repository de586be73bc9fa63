"""Default collaborators for workers that delegate nothing to the platform.

These satisfy the collaborator protocols with the simplest behaviour that
is still correct: the repo ref comes straight from the goal, credentials are
whatever the worker was started with, and goals are accepted unsigned only
while goal signing is disabled.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from sdm_serverless.core.errors import MissingConfigError, SignatureVerificationError
from sdm_serverless.core.logging import get_logger
from sdm_serverless.core.settings import GoalSigningSettings
from sdm_serverless.goals.models import GoalEvent, RepoRef

if TYPE_CHECKING:
    from sdm_serverless.execution.context import DispatchContext, GoalInvocation

logger = get_logger(__name__)


class GoalRepoRefResolver:
    def repo_ref_from_goal(self, event: GoalEvent) -> RepoRef:
        return RepoRef.from_goal(event)


class StaticCredentialsResolver:
    """Hands every goal the same credentials object."""

    def __init__(self, credentials: Any = None) -> None:
        self._credentials = credentials

    async def resolve_credentials(self, ctx: DispatchContext, repo_ref: RepoRef) -> Any:
        return self._credentials


class SigningDisabledVerifier:
    """Accepts every goal while signing is off; refuses to guess once it is on.

    Workers with goal signing enabled must be given the platform's verifier.
    """

    async def verify(self, event: GoalEvent, signing: GoalSigningSettings, ctx: DispatchContext) -> None:
        if signing.enabled:
            raise SignatureVerificationError(
                f"Goal signing is enabled but no signature verifier is configured for {event.unique_name}"
            ).with_context(goal=event.unique_name, goal_set_id=event.goal_set_id)
        logger.debug("signature.not_verified", goal=event.unique_name)


class DirectoryProjectLoader:
    """Serves goals from a project already checked out on disk."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    async def load(self, invocation: GoalInvocation) -> Path:
        if not self._directory.is_dir():
            raise MissingConfigError(
                "project_dir", f"Project directory does not exist: {self._directory}"
            ).with_context(goal=invocation.event.unique_name)
        return self._directory
