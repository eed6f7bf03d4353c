"""In-memory registry of provisioned coding-agent environments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from themehook.models import EnvironmentInfo
from themehook.runner.base import AgentBackend, AgentSession

logger = structlog.get_logger("themehook.store")

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def derive_env_id(working_directory: str) -> str:
    """Map a working directory to its environment id.

    Every non-alphanumeric character becomes ``_``, so distinct paths can
    collide (``/a-b`` and ``/a_b`` share an id).
    """
    return _NON_ALNUM.sub("_", working_directory)


@dataclass
class ProvisionedEnvironment:
    env_id: str
    working_directory: str
    model: str
    created_at: datetime
    session: AgentSession

    def info(self) -> EnvironmentInfo:
        return EnvironmentInfo(
            env_id=self.env_id,
            working_directory=self.working_directory,
            model=self.model,
            created_at=self.created_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        )


class EnvironmentStore:
    """Maps env ids to live agent sessions for the life of the process.

    Entries never expire: they are dropped only by :meth:`remove` or process
    exit, so the map grows without bound under sustained provisioning.
    """

    def __init__(self, backend: AgentBackend, *, skip_git_repo_check: bool = False) -> None:
        self._backend = backend
        self._skip_git_repo_check = skip_git_repo_check
        self._environments: dict[str, ProvisionedEnvironment] = {}

    def create(self, working_directory: str, model: str) -> ProvisionedEnvironment:
        """Start a full-access agent session bound to ``working_directory``.

        Never fails on an existing id: a colliding entry is replaced.
        """
        env_id = derive_env_id(working_directory)
        session = self._backend.start_session(
            working_directory,
            model=model,
            full_access=True,
            skip_git_repo_check=self._skip_git_repo_check,
        )
        environment = ProvisionedEnvironment(
            env_id=env_id,
            working_directory=working_directory,
            model=model,
            created_at=datetime.now(timezone.utc),
            session=session,
        )
        previous = self._environments.get(env_id)
        if previous is not None:
            logger.warning(
                "Replacing environment",
                env_id=env_id,
                previous_directory=previous.working_directory,
                working_directory=working_directory,
            )
        self._environments[env_id] = environment
        logger.info(
            "Environment created",
            env_id=env_id,
            working_directory=working_directory,
            model=model,
        )
        return environment

    def get(self, env_id: str) -> ProvisionedEnvironment | None:
        return self._environments.get(env_id)

    def list(self) -> list[ProvisionedEnvironment]:
        return list(self._environments.values())

    def remove(self, env_id: str) -> bool:
        """Drop an environment; return True iff it existed."""
        removed = self._environments.pop(env_id, None)
        if removed is None:
            return False
        logger.info("Removed environment", env_id=env_id)
        return True
