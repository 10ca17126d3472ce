"""Pydantic request and response models for the GGML Converter API.

Models
------
ConvertRequest
    Payload for ``POST /api/convert`` — the source model and quantization
    profile, both given by enum member name.
ConvertResponse
    Successful conversion result carrying the path of the produced file.
StageError
    Error detail returned with a 500 when a pipeline stage fails.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ggml_converter.core.models import ConversionRequest, QuantProfile, SourceModel


class ConvertRequest(BaseModel):
    """Request body for the ``POST /api/convert`` endpoint.

    Attributes:
        name: Source model to convert (e.g. ``"Llama2_7b"``).
        quant_info: Quantization profile (e.g. ``"Q4"``).
    """

    name: SourceModel = Field(
        ...,
        description="Source model name (Llama2_7b, Llama2Chat7b, Llama2Chinese7b).",
    )
    quant_info: QuantProfile = Field(
        ...,
        description="Quantization profile (Q4, Q8, F16, F32).",
    )

    def to_conversion_request(self) -> ConversionRequest:
        return ConversionRequest(source_name=self.name, profile=self.quant_info)


class ConvertResponse(BaseModel):
    """Response body for a successful conversion."""

    download_url: str = Field(
        ...,
        description="Path of the quantized model file.",
    )


class StageError(BaseModel):
    """Error detail for a failed pipeline stage."""

    stage: str = Field(..., description="Stage that failed (Toolchain, Fetch, Convert, Reduce).")
    kind: str = Field(..., description="Fatal, RetryableExhausted or DeterministicFailure.")
    error: str = Field(..., description="Failure class name.")
    cause: str = Field(..., description="Human-readable cause.")
