"""Value types shared by the conversion pipeline stages.

Enumerations
------------
SourceModel
    The models the service knows how to fetch.  The member name is the wire
    value used by the HTTP API; ``repo_id`` is the Hugging Face repository.
QuantProfile
    The quantization levels the ``quantize`` binary is asked to produce.
    ``tag`` is the exact argument passed on its command line.

Results and failures
--------------------
Every stage returns a :class:`StageResult` on success and raises a
:class:`StageFailure` subclass otherwise.  The orchestrator folds both into a
:class:`PipelineOutcome`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SourceModel(str, Enum):
    """Known source models, keyed by wire name."""

    Llama2_7b = "Llama2_7b"
    Llama2Chat7b = "Llama2Chat7b"
    Llama2Chinese7b = "Llama2Chinese7b"

    @property
    def repo_id(self) -> str:
        return _REPO_IDS[self]


_REPO_IDS: dict[SourceModel, str] = {
    SourceModel.Llama2_7b: "meta-llama/Llama-2-7b-hf",
    SourceModel.Llama2Chat7b: "meta-llama/Llama-2-7b-chat-hf",
    SourceModel.Llama2Chinese7b: "LinkSoul/Chinese-Llama-2-7b",
}


class QuantProfile(str, Enum):
    """Quantization levels, keyed by wire name."""

    Q4 = "Q4"
    Q8 = "Q8"
    F16 = "F16"
    F32 = "F32"

    @property
    def tag(self) -> str:
        """Argument understood by ``quantize`` for this profile."""
        return _QUANT_TAGS[self]


_QUANT_TAGS: dict[QuantProfile, str] = {
    QuantProfile.Q4: "q4_0",
    QuantProfile.Q8: "q8_0",
    QuantProfile.F16: "f16",
    QuantProfile.F32: "f32",
}


class Stage(str, Enum):
    """Ordered units of the pipeline."""

    TOOLCHAIN = "Toolchain"
    FETCH = "Fetch"
    CONVERT = "Convert"
    REDUCE = "Reduce"


class FailureKind(str, Enum):
    """How a stage failure should be treated by callers."""

    FATAL = "Fatal"
    RETRYABLE_EXHAUSTED = "RetryableExhausted"
    DETERMINISTIC = "DeterministicFailure"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class StageFailure(Exception):
    """Base class for every failure a pipeline stage can report.

    Attributes:
        stage: The stage that failed.
        cause: Human-readable description passed through to API clients.
        kind: Retry classification of the failure.
    """

    stage: Stage = Stage.TOOLCHAIN
    kind: FailureKind = FailureKind.FATAL

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "kind": self.kind.value,
            "error": type(self).__name__,
            "cause": self.cause,
        }


class ToolchainUnavailable(StageFailure):
    """The toolchain could not be downloaded, unpacked, built or verified."""

    stage = Stage.TOOLCHAIN
    kind = FailureKind.FATAL


class UnknownArtifact(StageFailure):
    """The requested source name has no registry entry."""

    stage = Stage.FETCH
    kind = FailureKind.FATAL


class UnknownProfile(StageFailure):
    """The requested quantization profile does not exist."""

    stage = Stage.REDUCE
    kind = FailureKind.FATAL


class FetchFailed(StageFailure):
    """Every clone attempt for a source failed."""

    stage = Stage.FETCH
    kind = FailureKind.RETRYABLE_EXHAUSTED

    def __init__(self, source_name: str, attempts: int, last_error: str = "") -> None:
        cause = f"Failed to fetch '{source_name}' after {attempts} attempt(s)"
        if last_error:
            cause = f"{cause}: {last_error}"
        super().__init__(cause)
        self.source_name = source_name
        self.attempts = attempts


class ConverterMissing(StageFailure):
    """The toolchain has no conversion script."""

    stage = Stage.CONVERT
    kind = FailureKind.FATAL


class ConversionFailed(StageFailure):
    """The conversion script exited non-zero or timed out."""

    stage = Stage.CONVERT
    kind = FailureKind.DETERMINISTIC


class ReducerMissing(StageFailure):
    """The toolchain has no quantize binary."""

    stage = Stage.REDUCE
    kind = FailureKind.FATAL


class ReductionFailed(StageFailure):
    """The quantize binary exited non-zero or timed out."""

    stage = Stage.REDUCE
    kind = FailureKind.DETERMINISTIC


# ---------------------------------------------------------------------------
# Requests and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConversionRequest:
    """One request to turn a source model into a quantized file."""

    source_name: SourceModel
    profile: QuantProfile

    @classmethod
    def parse(cls, name: str, quant_info: str) -> ConversionRequest:
        """Build a request from raw wire strings.

        Raises:
            UnknownArtifact: If ``name`` is not a :class:`SourceModel` member.
            UnknownProfile: If ``quant_info`` is not a :class:`QuantProfile` member.
        """
        try:
            source = SourceModel(name)
        except ValueError:
            raise UnknownArtifact(f"Unknown source model: {name}") from None
        try:
            profile = QuantProfile(quant_info)
        except ValueError:
            raise UnknownProfile(f"Unknown quantization profile: {quant_info}") from None
        return cls(source_name=source, profile=profile)


@dataclass(frozen=True)
class StageResult:
    """What a stage produced and whether it had to do any work."""

    produced_path: Path
    already_present: bool = False


@dataclass(frozen=True)
class PipelineOutcome:
    """Final result of one pipeline run.

    Exactly one of ``final_artifact_path`` and ``failure`` is set.
    """

    final_artifact_path: Path | None = None
    failure: StageFailure | None = None
    stages: tuple[StageResult, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.failure is None
