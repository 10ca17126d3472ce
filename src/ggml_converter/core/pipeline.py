"""Conversion pipeline orchestrator.

:class:`PipelineOrchestrator` runs the four stages for one request, strictly
in order::

    Init → ToolchainReady → ArtifactReady → Converted → Reduced → Done
      └──────────────┴──────────────┴────────────┴──────────→ Failed(stage, cause)

Each stage's input is the previous stage's output, so nothing runs in
parallel.  The first :class:`StageFailure` stops the run; files produced by
earlier stages are kept because they are valid, reusable state for the next
request with the same identifiers.

Usage
-----
::

    from ggml_converter.core.config import config
    from ggml_converter.core.models import ConversionRequest
    from ggml_converter.core.pipeline import PipelineOrchestrator

    orchestrator = PipelineOrchestrator.from_config(config)
    outcome = orchestrator.run(ConversionRequest.parse("Llama2_7b", "Q4"))
    if outcome.ok:
        print(outcome.final_artifact_path)
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from ggml_converter.core.config import ConverterConfig
from ggml_converter.core.config import config as default_config
from ggml_converter.core.converter import INTERMEDIATE_OUTTYPE, Converter
from ggml_converter.core.fetcher import ArtifactFetcher, ArtifactRegistry
from ggml_converter.core.locks import KeyedLocks
from ggml_converter.core.models import (
    ConversionRequest,
    PipelineOutcome,
    StageFailure,
    StageResult,
)
from ggml_converter.core.process import ProcessRunner
from ggml_converter.core.reducer import Reducer
from ggml_converter.core.toolchain import ToolchainManager

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    INIT = "Init"
    TOOLCHAIN_READY = "ToolchainReady"
    ARTIFACT_READY = "ArtifactReady"
    CONVERTED = "Converted"
    REDUCED = "Reduced"
    DONE = "Done"
    FAILED = "Failed"


class PipelineOrchestrator:
    """Sequence toolchain → fetch → convert → reduce for one request."""

    def __init__(
        self,
        toolchain: ToolchainManager,
        fetcher: ArtifactFetcher,
        converter: Converter,
        reducer: Reducer,
        outputs_dir: Path,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._toolchain = toolchain
        self._fetcher = fetcher
        self._converter = converter
        self._reducer = reducer
        self._outputs_dir = outputs_dir
        self._locks = locks or KeyedLocks()

    @classmethod
    def from_config(
        cls,
        config: ConverterConfig | None = None,
        runner: ProcessRunner | None = None,
    ) -> PipelineOrchestrator:
        """Wire every stage from a configuration.

        Args:
            config: Configuration object. If None, uses global default config.
            runner: Process runner shared by all stages.  If None, one is
                created with ``config.process_timeout``.
        """
        config = config or default_config
        runner = runner or ProcessRunner(timeout=config.process_timeout)
        locks = KeyedLocks()
        return cls(
            toolchain=ToolchainManager(config, runner, locks),
            fetcher=ArtifactFetcher(config, ArtifactRegistry.from_config(config), runner, locks),
            converter=Converter(runner, config.python_executable),
            reducer=Reducer(runner),
            outputs_dir=config.outputs_dir,
            locks=locks,
        )

    # -- Output naming ------------------------------------------------------

    def intermediate_path(self, request: ConversionRequest) -> Path:
        # Kept distinct from every final name, including the f16 profile.
        return self._outputs_dir / f"{request.source_name.value}-converted-{INTERMEDIATE_OUTTYPE}.bin"

    def final_path(self, request: ConversionRequest) -> Path:
        return self._outputs_dir / f"{request.source_name.value}-{request.profile.tag}.bin"

    # -- Run ----------------------------------------------------------------

    def run(self, request: ConversionRequest) -> PipelineOutcome:
        """Run every stage for ``request``.

        Returns:
            A :class:`PipelineOutcome` holding either the final artifact path
            or the :class:`StageFailure` that stopped the run.  Stage
            failures are never raised from here; anything else propagates.
        """
        state = PipelineState.INIT
        stages: list[StageResult] = []
        logger.info(
            "Pipeline started for %s (%s).",
            request.source_name.value,
            request.profile.tag,
        )

        try:
            toolchain = self._toolchain.ensure_toolchain()
            stages.append(toolchain)
            state = self._advance(state, PipelineState.TOOLCHAIN_READY)

            artifact = self._fetcher.ensure_artifact(request.source_name)
            stages.append(artifact)
            state = self._advance(state, PipelineState.ARTIFACT_READY)

            # Two requests for the same source share the intermediate file.
            with self._locks.hold(f"output:{request.source_name.value}"):
                converted = self._converter.convert(
                    toolchain.produced_path,
                    artifact.produced_path,
                    self.intermediate_path(request),
                )
                stages.append(converted)
                state = self._advance(state, PipelineState.CONVERTED)

                reduced = self._reducer.reduce(
                    toolchain.produced_path,
                    converted.produced_path,
                    request.profile,
                    self.final_path(request),
                )
                stages.append(reduced)
                state = self._advance(state, PipelineState.REDUCED)

        except StageFailure as failure:
            logger.error(
                "Pipeline failed in state %s at stage %s: %s",
                state.value,
                failure.stage.value,
                failure.cause,
            )
            self._advance(state, PipelineState.FAILED)
            return PipelineOutcome(failure=failure, stages=tuple(stages))

        self._advance(state, PipelineState.DONE)
        return PipelineOutcome(final_artifact_path=reduced.produced_path, stages=tuple(stages))

    @staticmethod
    def _advance(current: PipelineState, new: PipelineState) -> PipelineState:
        logger.debug("Pipeline state %s → %s", current.value, new.value)
        return new
