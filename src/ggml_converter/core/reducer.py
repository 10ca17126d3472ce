"""Quantization of a converted GGML file."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ggml_converter.core.converter import partial_path, remove_stale
from ggml_converter.core.models import QuantProfile, ReducerMissing, ReductionFailed, StageResult
from ggml_converter.core.process import ProcessRunner
from ggml_converter.core.toolchain import QUANTIZE_BINARY

logger = logging.getLogger(__name__)


class Reducer:
    def __init__(self, runner: ProcessRunner) -> None:
        self._runner = runner

    def reduce(
        self,
        toolchain_dir: Path,
        in_file: Path,
        profile: QuantProfile,
        out_file: Path,
    ) -> StageResult:
        """Run ``quantize in_file out_file <tag>``.

        Like conversion, the output is regenerated on every call.

        Raises:
            ReducerMissing: If the quantize binary has not been built.
            ReductionFailed: If quantize fails or times out.
        """
        remove_stale(out_file)

        binary = toolchain_dir / QUANTIZE_BINARY
        if not (binary.is_file() and os.access(binary, os.X_OK)):
            raise ReducerMissing(f"Quantize binary missing or not executable at '{binary}'")

        tmp = partial_path(out_file)
        result = self._runner.run(binary, [in_file, tmp, profile.tag], cwd=toolchain_dir)
        if not result.ok:
            tmp.unlink(missing_ok=True)
            raise ReductionFailed(f"Quantizing '{in_file.name}' to {profile.tag} failed: {result.describe()}")
        if not tmp.is_file():
            raise ReductionFailed(f"Quantizing '{in_file.name}' produced no output file")

        tmp.replace(out_file)
        logger.info("Quantized '%s' to '%s' (%s).", in_file.name, out_file, profile.tag)
        return StageResult(out_file)
