"""Command-line client for the conversion service.

Posts one conversion request and prints the returned ``download_url``::

    ggml-converter-request Llama2_7b Q4 --url http://localhost:3000
"""

from __future__ import annotations

import logging
import sys

import requests

from ggml_converter import __version__
from ggml_converter.core.models import QuantProfile, SourceModel

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:3000"
CONVERT_PATH = "/api/convert"


class ConversionError(RuntimeError):
    """The service answered with a non-success status."""

    def __init__(self, status_code: int, detail) -> None:
        super().__init__(f"Conversion failed with HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def new_session() -> requests.Session:
    """Create a session with JSON headers set."""
    session = requests.Session()
    session.headers.update(
        {"User-Agent": f"ggml-converter-client/{__version__}", "Accept": "application/json"}
    )
    return session


def request_conversion(
    session: requests.Session,
    name: SourceModel | str,
    quant_info: QuantProfile | str,
    base_url: str = DEFAULT_URL,
    timeout: float | None = None,
) -> str:
    """Ask the service to convert ``name`` with ``quant_info``.

    Args:
        session: HTTP session to use.
        name: Source model name.
        quant_info: Quantization profile name.
        base_url: Service root URL.
        timeout: Request timeout in seconds.  ``None`` waits indefinitely,
            which is usually what a first conversion needs.

    Returns:
        The ``download_url`` reported by the service.

    Raises:
        ConversionError: On any non-2xx response.
        requests.RequestException: On connection errors.
    """
    payload = {
        "name": getattr(name, "value", name),
        "quant_info": getattr(quant_info, "value", quant_info),
    }
    url = base_url.rstrip("/") + CONVERT_PATH
    logger.info("POST %s %s", url, payload)

    response = session.post(url, json=payload, timeout=timeout)
    if not response.ok:
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = response.text
        raise ConversionError(response.status_code, detail)

    return response.json()["download_url"]


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``ggml-converter-request``."""
    import argparse

    parser = argparse.ArgumentParser(description="Request a GGML conversion")
    parser.add_argument("name", choices=[m.value for m in SourceModel], help="Source model")
    parser.add_argument("quant_info", choices=[p.value for p in QuantProfile], help="Quantization profile")
    parser.add_argument("--url", default=DEFAULT_URL, help="Service root URL")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        download_url = request_conversion(
            new_session(), args.name, args.quant_info, base_url=args.url, timeout=args.timeout
        )
    except ConversionError as exc:
        logger.error("%s", exc)
        return 1
    except requests.RequestException as exc:
        logger.error("Could not reach %s: %s", args.url, exc)
        return 2

    print(f"download url: {download_url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
