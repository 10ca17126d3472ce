"""Source model acquisition.

:class:`ArtifactRegistry` maps a source name to the URL it is cloned from.
It is built once from configuration and never mutated, so it can be shared
between request threads without locking.

:class:`ArtifactFetcher` clones a source into ``<models_dir>/<name>`` unless
that directory already exists.  Cloning is the only network-bound step of the
pipeline and the only one retried: each attempt clones into a hidden
``.<name>.partial`` directory that is wiped before the next attempt and only
renamed into place once ``git clone`` succeeded.  An interrupted clone
therefore never looks like a fetched model.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from ggml_converter.core.config import ConverterConfig
from ggml_converter.core.locks import KeyedLocks
from ggml_converter.core.models import FetchFailed, SourceModel, StageResult, UnknownArtifact
from ggml_converter.core.process import ProcessRunner

logger = logging.getLogger(__name__)


class ArtifactRegistry(Mapping):
    """Read-only mapping of source name → clone URL."""

    def __init__(self, entries: Mapping[str, str]) -> None:
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def from_config(cls, config: ConverterConfig) -> ArtifactRegistry:
        """Seed the registry with every :class:`SourceModel`."""
        base = config.registry_base_url.rstrip("/")
        return cls({model.value: f"{base}/{model.repo_id}" for model in SourceModel})

    def __getitem__(self, name: str) -> str:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class ArtifactFetcher:
    """Clone-if-absent with a bounded number of attempts."""

    def __init__(
        self,
        config: ConverterConfig,
        registry: ArtifactRegistry,
        runner: ProcessRunner,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._models_dir = config.models_dir
        self._attempts = config.fetch_attempts
        self._retry_delay = config.fetch_retry_delay
        self._registry = registry
        self._runner = runner
        self._locks = locks or KeyedLocks()

    def artifact_dir(self, source_name: str | SourceModel) -> Path:
        return self._models_dir / _name(source_name)

    def ensure_artifact(self, source_name: str | SourceModel) -> StageResult:
        """Make sure the source model is cloned locally.

        The registry lookup runs before the presence check, so an unknown
        name is rejected even when a directory of that name already exists
        under ``models/``.  This is the reverse of the presence-first order
        the other stages use.

        Args:
            source_name: Registry key (a :class:`SourceModel` or its value).

        Returns:
            :class:`StageResult` for the model directory.

        Raises:
            UnknownArtifact: If the name is not in the registry.  No process
                is started in that case.
            FetchFailed: If every clone attempt failed.
        """
        name = _name(source_name)
        # Registry first: the name becomes a path component below.
        url = self._registry.get(name)
        if url is None:
            raise UnknownArtifact(f"No registry entry for source '{name}'")

        target = self._models_dir / name
        with self._locks.hold(f"source:{name}"):
            if target.is_dir():
                logger.info("Source '%s' already present at '%s' — skipping fetch.", name, target)
                return StageResult(target, already_present=True)

            self._clone(name, url, target)
        return StageResult(target, already_present=False)

    def _clone(self, name: str, url: str, target: Path) -> None:
        self._models_dir.mkdir(parents=True, exist_ok=True)
        partial = self._models_dir / f".{name}.partial"
        last_error = ""

        for attempt in range(1, self._attempts + 1):
            if partial.exists():
                shutil.rmtree(partial)

            logger.info("Fetching '%s' from %s (attempt %d/%d).", name, url, attempt, self._attempts)
            result = self._runner.run("git", ["clone", url, partial.name], cwd=self._models_dir)

            if result.ok and partial.is_dir():
                partial.rename(target)
                logger.info("Fetched '%s' to '%s'.", name, target)
                return

            last_error = result.describe() if not result.ok else "clone produced no directory"
            logger.warning("Fetch attempt %d for '%s' failed: %s", attempt, name, last_error)
            if attempt < self._attempts and self._retry_delay:
                time.sleep(self._retry_delay)

        if partial.exists():
            shutil.rmtree(partial)
        raise FetchFailed(name, self._attempts, last_error)


def _name(source_name: str | SourceModel) -> str:
    return source_name.value if isinstance(source_name, SourceModel) else str(source_name)
