"""Hugging Face → GGML f16 conversion.

Runs the toolchain's ``convert.py`` against a cloned model directory.  The
output is always regenerated: a stale file is removed before the script
starts, and the script writes to a ``.partial`` sibling that is renamed over
``out_file`` only when it exits cleanly.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ggml_converter.core.models import ConversionFailed, ConverterMissing, StageResult
from ggml_converter.core.process import ProcessRunner
from ggml_converter.core.toolchain import CONVERT_SCRIPT

logger = logging.getLogger(__name__)

INTERMEDIATE_OUTTYPE = "f16"


def partial_path(out_file: Path) -> Path:
    """Temporary sibling a stage writes to before renaming into place."""
    return out_file.with_name(f"{out_file.name}.partial")


def remove_stale(out_file: Path) -> None:
    """Delete a previous output and any half-written temporary file."""
    for path in (out_file, partial_path(out_file)):
        if path.exists():
            logger.info("Removing stale output '%s'.", path)
            path.unlink()


class Converter:
    def __init__(self, runner: ProcessRunner, python_executable: str = "python3") -> None:
        self._runner = runner
        self._python = python_executable

    def convert(self, toolchain_dir: Path, source_dir: Path, out_file: Path) -> StageResult:
        """Convert ``source_dir`` into an f16 GGML file at ``out_file``.

        Raises:
            ConverterMissing: If the toolchain has no ``convert.py``.
            ConversionFailed: If the script fails or times out.
        """
        remove_stale(out_file)

        script = toolchain_dir / CONVERT_SCRIPT
        if not script.is_file():
            raise ConverterMissing(f"Conversion script not found at '{script}'")

        out_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = partial_path(out_file)
        result = self._runner.run(
            self._python,
            [script, source_dir, "--outtype", INTERMEDIATE_OUTTYPE, "--outfile", tmp],
            cwd=toolchain_dir,
        )
        if not result.ok:
            tmp.unlink(missing_ok=True)
            raise ConversionFailed(f"Conversion of '{source_dir.name}' failed: {result.describe()}")
        if not tmp.is_file():
            raise ConversionFailed(f"Conversion of '{source_dir.name}' produced no output file")

        tmp.replace(out_file)
        logger.info("Converted '%s' to '%s'.", source_dir.name, out_file)
        return StageResult(out_file)
