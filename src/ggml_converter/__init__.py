"""GGML Converter Service - Hugging Face models to quantized GGML files."""

__version__ = "0.1.0"

from ggml_converter.core.config import ConverterConfig, config
from ggml_converter.core.models import ConversionRequest, QuantProfile, SourceModel
from ggml_converter.core.pipeline import PipelineOrchestrator

__all__ = [
    "ConversionRequest",
    "ConverterConfig",
    "PipelineOrchestrator",
    "QuantProfile",
    "SourceModel",
    "config",
]
