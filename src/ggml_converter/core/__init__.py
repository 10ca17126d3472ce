"""Core conversion pipeline.

- **config.py**: Environment-based configuration (``GGML_`` prefix)
- **process.py**: External command execution with timeouts
- **toolchain.py**: llama.cpp download and build
- **fetcher.py**: Source model registry and cloning with retry
- **converter.py** / **reducer.py**: convert.py and quantize invocations
- **pipeline.py**: The orchestrator that runs the stages in order
"""

from ggml_converter.core.config import ConverterConfig, config
from ggml_converter.core.models import (
    ConversionRequest,
    PipelineOutcome,
    QuantProfile,
    SourceModel,
    Stage,
    StageFailure,
    StageResult,
)
from ggml_converter.core.pipeline import PipelineOrchestrator

__all__ = [
    "ConversionRequest",
    "ConverterConfig",
    "PipelineOrchestrator",
    "PipelineOutcome",
    "QuantProfile",
    "SourceModel",
    "Stage",
    "StageFailure",
    "StageResult",
    "config",
]
