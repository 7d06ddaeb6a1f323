"""Deploy source providers that materialize an application revision."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, TextIO, runtime_checkable

import structlog

from piped_planner.config.deployment import DeploymentConfiguration, load_deployment_configuration
from piped_planner.core.exceptions import DeploymentConfigError, DeploySourceError

logger = structlog.get_logger()


@dataclass(frozen=True)
class DeploySource:
    """Materialized files and configuration of one application revision."""

    repo_dir: Path
    app_dir: Path
    revision: str
    deployment_config: DeploymentConfiguration


@runtime_checkable
class DeploySourceProvider(Protocol):
    """Produces the deploy source for a fixed revision."""

    async def get(self, sink: TextIO) -> DeploySource:
        ...


class LocalDeploySourceProvider:
    """Deploy source backed by an already checked-out repository.

    The first call to ``get`` loads the deployment configuration from disk;
    later calls return the same DeploySource.
    """

    def __init__(
        self,
        repo_dir: Path,
        app_path: str = ".",
        revision: str = "",
        config_filename: str = ".pipe.yaml",
    ):
        self.repo_dir = Path(repo_dir)
        self.app_path = app_path
        self.revision = revision
        self.config_filename = config_filename

        self._source: Optional[DeploySource] = None
        self._lock = asyncio.Lock()

    async def get(self, sink: TextIO) -> DeploySource:
        async with self._lock:
            if self._source is None:
                self._source = await asyncio.to_thread(self._prepare, sink)
            return self._source

    def _prepare(self, sink: TextIO) -> DeploySource:
        app_dir = (self.repo_dir / self.app_path).resolve()
        sink.write(f"Preparing deploy source at revision {self.revision or 'HEAD'}\n")

        if not self.repo_dir.is_dir():
            raise DeploySourceError(f"repository directory not found: {self.repo_dir}")
        if not app_dir.is_dir():
            raise DeploySourceError(f"application directory not found: {app_dir}")
        if self.repo_dir.resolve() not in (app_dir, *app_dir.parents):
            raise DeploySourceError(f"application path escapes repository: {self.app_path}")

        try:
            config = load_deployment_configuration(app_dir, self.config_filename)
        except DeploymentConfigError as e:
            raise DeploySourceError(f"unable to load deployment configuration: {e}") from e

        sink.write(f"Successfully loaded deployment configuration {self.config_filename}\n")
        logger.info(
            "Prepared deploy source",
            app_dir=str(app_dir),
            revision=self.revision,
            kind=config.kind.value,
        )
        return DeploySource(
            repo_dir=self.repo_dir,
            app_dir=app_dir,
            revision=self.revision,
            deployment_config=config,
        )
