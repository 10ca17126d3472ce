"""Configuration management for the GGML Converter Service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the GGML_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (GGML_* prefix)
2. .env file in the project root
3. Default values defined in ConverterConfig

Example .env file:
    GGML_WORK_DIR=/srv/ggml
    GGML_TOOLCHAIN_VERSION=d2a4366
    GGML_FETCH_ATTEMPTS=3
    GGML_PROCESS_TIMEOUT=3600

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The pipeline, the API and the CLI all read from this single instance unless a
custom configuration is passed explicitly (as the tests do).

Directory Layout
----------------
Everything the pipeline produces lives under ``work_dir``:

- ``llama.cpp/``: the unpacked and built toolchain
- ``models/<name>/``: one cloned source repository per model
- ``outputs/``: intermediate (f16) and quantized model files

The ``models`` and ``outputs`` directories are created on initialization. The
toolchain directory is never created here because its presence is what marks
the toolchain as acquired.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConverterConfig(BaseSettings):
    """Main configuration for the GGML Converter Service.

    Attributes
    ----------
    Paths:
        work_dir : Path
            Root directory holding the toolchain, models and outputs
        toolchain_dir_name : str
            Name of the canonical toolchain directory under work_dir

    Toolchain:
        toolchain_version : str
            llama.cpp release tag suffix (``master-<version>``)
        toolchain_release_url_template : str
            Archive URL with a ``{version}`` placeholder

    Fetching:
        registry_base_url : str
            Base URL that model repository ids are cloned from
        fetch_attempts : int
            Total clone attempts before giving up
        fetch_retry_delay : float
            Seconds to wait between clone attempts

    Processes:
        process_timeout : float
            Upper bound in seconds for any single external command
        python_executable : str
            Interpreter used to run the toolchain's conversion script

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Bind port for uvicorn
        log_level : str
            Root logging level used by the server entry point

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = ConverterConfig(work_dir="/tmp/ggml", fetch_attempts=5)
        >>> custom_config.models_dir
        PosixPath('/tmp/ggml/models')
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GGML_",
        case_sensitive=False,
    )

    # Paths
    work_dir: Path = Field(
        default=Path("."),
        description="Root directory for the toolchain, models and outputs",
    )
    toolchain_dir_name: str = Field(
        default="llama.cpp",
        description="Canonical toolchain directory name under work_dir",
    )

    # Toolchain settings
    # From https://github.com/ggerganov/llama.cpp/tags
    toolchain_version: str = Field(
        default="d2a4366",
        description="llama.cpp release tag suffix",
    )
    toolchain_release_url_template: str = Field(
        default="https://github.com/ggerganov/llama.cpp/archive/refs/tags/master-{version}.tar.gz",
        description="Release archive URL, {version} is substituted",
    )

    # Fetch settings
    registry_base_url: str = Field(
        default="https://huggingface.co",
        description="Base URL model repositories are cloned from",
    )
    fetch_attempts: int = Field(
        default=3,
        description="Total clone attempts before the fetch stage gives up",
        ge=1,
        le=10,
    )
    fetch_retry_delay: float = Field(
        default=0.0,
        description="Seconds to sleep between clone attempts",
        ge=0.0,
    )

    # Process settings
    process_timeout: float = Field(
        default=3600.0,
        description="Timeout in seconds for every external command",
        gt=0.0,
    )
    python_executable: str = Field(
        default="python3",
        description="Interpreter used to run convert.py",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level for the server process",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the models and outputs directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.models_dir.mkdir(parents=True, exist_ok=True)
        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def toolchain_dir(self) -> Path:
        """Directory the toolchain is unpacked and built in."""
        return self.work_dir / self.toolchain_dir_name

    @property
    def models_dir(self) -> Path:
        """Directory holding one cloned repository per source model."""
        return self.work_dir / "models"

    @property
    def outputs_dir(self) -> Path:
        """Directory holding intermediate and final model files."""
        return self.work_dir / "outputs"

    @property
    def toolchain_release_url(self) -> str:
        """Release archive URL for the configured toolchain version."""
        return self.toolchain_release_url_template.format(version=self.toolchain_version)


# Global configuration instance
# Loads values from environment variables (GGML_* prefix) and .env file.
config = ConverterConfig()
