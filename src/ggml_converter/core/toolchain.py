"""llama.cpp toolchain acquisition and build.

:class:`ToolchainManager` makes sure ``<work_dir>/llama.cpp`` exists and that
its ``quantize`` binary has been built.  Both steps are presence-based: an
existing directory skips the download, an existing executable skips the
build.  The download lands in a versioned directory that is only renamed to
the canonical name once extraction succeeded, so a present toolchain
directory is always a complete one.

Every failure here is fatal.  A broken release archive or a failing build
will fail the same way on the next attempt, so nothing is retried.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from ggml_converter.core.config import ConverterConfig
from ggml_converter.core.locks import KeyedLocks
from ggml_converter.core.models import StageResult, ToolchainUnavailable
from ggml_converter.core.process import ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)

QUANTIZE_BINARY = "quantize"
CONVERT_SCRIPT = "convert.py"


class ToolchainManager:
    """Fetch-if-absent and build-if-absent for the llama.cpp toolchain.

    Attributes:
        _config (ConverterConfig):
            Provides the work directory, release version and URL.
        _runner (ProcessRunner):
            Runs wget, tar, mv, make and the verification call.
        _locks (KeyedLocks):
            Serialises concurrent callers on the toolchain directory.
    """

    def __init__(
        self,
        config: ConverterConfig,
        runner: ProcessRunner,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._locks = locks or KeyedLocks()

    # -- Paths --------------------------------------------------------------

    @property
    def toolchain_dir(self) -> Path:
        return self._config.toolchain_dir

    @property
    def quantize_binary(self) -> Path:
        return self.toolchain_dir / QUANTIZE_BINARY

    @property
    def convert_script(self) -> Path:
        return self.toolchain_dir / CONVERT_SCRIPT

    @property
    def _archive_name(self) -> str:
        return f"master-{self._config.toolchain_version}.tar.gz"

    @property
    def _extracted_dir(self) -> Path:
        # GitHub tag archives unpack to <repo>-<tag>.
        return self._config.work_dir / f"llama.cpp-master-{self._config.toolchain_version}"

    # -- Public interface ---------------------------------------------------

    def ensure_toolchain(self) -> StageResult:
        """Make sure the toolchain is unpacked and its quantize binary built.

        Returns:
            :class:`StageResult` for the toolchain directory.
            ``already_present`` is ``True`` only when neither the download
            nor the build had to run.

        Raises:
            ToolchainUnavailable: If any acquisition, build or verification
                step fails.
        """
        with self._locks.hold(f"toolchain:{self.toolchain_dir}"):
            downloaded = self._ensure_source()
            built = self._ensure_built()

        return StageResult(self.toolchain_dir, already_present=not (downloaded or built))

    def is_built(self) -> bool:
        """Whether the quantize binary exists and is executable."""
        binary = self.quantize_binary
        return binary.is_file() and os.access(binary, os.X_OK)

    # -- Steps --------------------------------------------------------------

    def _ensure_source(self) -> bool:
        if self.toolchain_dir.is_dir():
            logger.info("Toolchain already present at '%s' — skipping download.", self.toolchain_dir)
            return False

        work_dir = self._config.work_dir
        work_dir.mkdir(parents=True, exist_ok=True)
        archive = work_dir / self._archive_name
        extracted = self._extracted_dir

        # Leftovers from an interrupted run.
        archive.unlink(missing_ok=True)
        if extracted.exists():
            shutil.rmtree(extracted)

        url = self._config.toolchain_release_url
        logger.info("Downloading toolchain release %s.", url)
        self._check(self._runner.run("wget", ["-q", "-O", archive.name, url], cwd=work_dir), "download")
        try:
            self._check(self._runner.run("tar", ["-zxf", archive.name], cwd=work_dir), "extract")
        finally:
            archive.unlink(missing_ok=True)

        if not extracted.is_dir():
            raise ToolchainUnavailable(
                f"Release archive did not contain '{extracted.name}'; "
                f"toolchain version '{self._config.toolchain_version}' is unusable"
            )

        self._check(
            self._runner.run("mv", [extracted.name, self.toolchain_dir.name], cwd=work_dir),
            "rename",
        )
        if not self.toolchain_dir.is_dir():
            raise ToolchainUnavailable(f"Toolchain directory '{self.toolchain_dir}' missing after unpack")

        logger.info("Toolchain unpacked to '%s'.", self.toolchain_dir)
        return True

    def _ensure_built(self) -> bool:
        if self.is_built():
            logger.info("'%s' already built — skipping build.", self.quantize_binary)
            return False

        logger.info("Building toolchain in '%s'.", self.toolchain_dir)
        self._check(self._runner.run("make", ["-j"], cwd=self.toolchain_dir), "build")

        if not self.quantize_binary.is_file():
            raise ToolchainUnavailable(f"Build finished but '{self.quantize_binary}' was not produced")

        self._check(
            self._runner.run(self.quantize_binary, ["--help"], cwd=self.toolchain_dir),
            "verify",
        )
        logger.info("Toolchain built and verified.")
        return True

    @staticmethod
    def _check(result: ProcessResult, step: str) -> None:
        if not result.ok:
            raise ToolchainUnavailable(f"Toolchain {step} failed: {result.describe()}")
