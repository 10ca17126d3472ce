"""GGML Converter Service — FastAPI Application.

This module is the single entry point for the web service.  It defines the
FastAPI ``app`` instance, the REST routes, and the ``main()`` CLI function
that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~ggml_converter.core.config.config`.
- **Conversion** is performed by
  :class:`~ggml_converter.core.pipeline.PipelineOrchestrator`, created once
  at startup and stored on ``app.state``.
- The conversion route is a plain ``def`` handler, so FastAPI runs it in its
  threadpool; the pipeline blocks on external processes and must not run on
  the event loop.

Endpoints
---------
========  ==================  ==========================================
Method    Path                Purpose
========  ==================  ==========================================
GET       ``/api/config``     Known source models and quantization profiles
POST      ``/api/convert``    Run the conversion pipeline for one model
========  ==================  ==========================================

Usage
-----
CLI (installed entry point)::

    ggml-converter

Direct invocation::

    python -m ggml_converter.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from ggml_converter import __version__
from ggml_converter.api.models import ConvertRequest, ConvertResponse, StageError
from ggml_converter.core.config import config
from ggml_converter.core.models import QuantProfile, SourceModel
from ggml_converter.core.pipeline import PipelineOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the pipeline orchestrator on startup.

    Nothing is downloaded or built here; the toolchain is acquired lazily by
    the first conversion request.
    """
    app.state.orchestrator = PipelineOrchestrator.from_config(config)
    logger.info("PipelineOrchestrator initialised (work_dir=%s).", config.work_dir)

    yield


app = FastAPI(
    title="GGML Converter Service",
    description="Converts Hugging Face models into quantized GGML files using llama.cpp.",
    version=__version__,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config() -> dict:
    """Return the models and quantization profiles the service accepts.

    Returns:
        Dictionary with keys ``version``, ``sources`` and ``profiles``.
    """
    return {
        "version": __version__,
        "sources": [{"name": m.value, "repo_id": m.repo_id} for m in SourceModel],
        "profiles": [{"name": p.value, "tag": p.tag} for p in QuantProfile],
    }


@app.post(
    "/api/convert",
    response_model=ConvertResponse,
    responses={500: {"description": "A pipeline stage failed.", "model": StageError}},
)
def convert_model(req: ConvertRequest) -> ConvertResponse:
    """Convert and quantize one source model.

    Unknown ``name`` or ``quant_info`` values are rejected by request
    validation (422) before any stage runs.

    Args:
        req: Validated :class:`ConvertRequest` payload.

    Returns:
        :class:`ConvertResponse` with the path of the quantized file.

    Raises:
        HTTPException: 500 carrying the failing stage, failure kind and
            cause when the pipeline fails.
    """
    orchestrator: PipelineOrchestrator = app.state.orchestrator
    outcome = orchestrator.run(req.to_conversion_request())

    if not outcome.ok:
        detail = StageError(**outcome.failure.to_dict())
        raise HTTPException(status_code=500, detail=detail.model_dump())

    return ConvertResponse(download_url=str(outcome.final_artifact_path))


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~ggml_converter.core.config.config`
    (``GGML_SERVER_HOST`` and ``GGML_SERVER_PORT``).  Defaults to
    ``0.0.0.0:3000``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    uvicorn.run(
        "ggml_converter.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
