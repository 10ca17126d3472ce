"""Shared pytest fixtures for GGML Converter tests.

No test starts a real download, clone or build: stages receive a
:class:`~tests.fakes.FakeRunner` instead of a real process runner.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

# The global config instance is created on import; keep its directories out
# of the checkout.
os.environ.setdefault("GGML_WORK_DIR", tempfile.mkdtemp(prefix="ggml-test-"))

import pytest  # noqa: E402

from ggml_converter.core.config import ConverterConfig  # noqa: E402
from tests.fakes import FakeRunner, make_executable  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ConverterConfig:
    """Configuration rooted in a temporary work directory."""
    return ConverterConfig(
        work_dir=temp_dir,
        toolchain_version="d2a4366",
        fetch_attempts=3,
        fetch_retry_delay=0.0,
        process_timeout=5,
        python_executable="python3",
        _env_file=None,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def installed_toolchain(test_config: ConverterConfig) -> Path:
    """A toolchain directory that is already unpacked and built."""
    toolchain_dir = test_config.toolchain_dir
    toolchain_dir.mkdir()
    (toolchain_dir / "convert.py").write_text("# convert\n")
    make_executable(toolchain_dir / "quantize")
    return toolchain_dir


@pytest.fixture
def fetched_source(test_config: ConverterConfig) -> Path:
    """An already cloned Llama2_7b repository."""
    source_dir = test_config.models_dir / "Llama2_7b"
    source_dir.mkdir(parents=True)
    (source_dir / "config.json").write_text("{}")
    return source_dir
