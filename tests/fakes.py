"""Process runner stand-in used by the stage and pipeline tests.

:class:`FakeRunner` records every invocation and simulates the file system
effects of the real tools: ``wget`` writes an archive, ``tar`` unpacks a
directory, ``make`` produces ``quantize`` and so on.  Individual tests
override a tool's behaviour with :meth:`FakeRunner.on`.
"""

import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ggml_converter.core.process import ProcessResult, ProcessStatus


@dataclass(frozen=True)
class Call:
    command: str
    args: tuple[str, ...]
    cwd: Path | None

    @property
    def name(self) -> str:
        return Path(self.command).name


Handler = Callable[[Call], ProcessResult]


def ok(call: Call, stdout: str = "") -> ProcessResult:
    return ProcessResult(call.command, call.args, ProcessStatus.OK, returncode=0, stdout=stdout)


def failed(call: Call, returncode: int = 1, stderr: str = "boom") -> ProcessResult:
    return ProcessResult(call.command, call.args, ProcessStatus.FAILED, returncode=returncode, stderr=stderr)


def _wget(call: Call) -> ProcessResult:
    # wget -q -O <archive> <url>
    (call.cwd / call.args[2]).write_bytes(b"archive")
    return ok(call)


def _tar(call: Call) -> ProcessResult:
    # tar -zxf master-<v>.tar.gz  ->  llama.cpp-master-<v>/
    tag = call.args[1].removesuffix(".tar.gz")
    extracted = call.cwd / f"llama.cpp-{tag}"
    extracted.mkdir()
    (extracted / "convert.py").write_text("# convert\n")
    (extracted / "Makefile").write_text("all:\n")
    return ok(call)


def _mv(call: Call) -> ProcessResult:
    (call.cwd / call.args[0]).rename(call.cwd / call.args[1])
    return ok(call)


def _make(call: Call) -> ProcessResult:
    make_executable(call.cwd / "quantize")
    return ok(call)


def _quantize(call: Call) -> ProcessResult:
    if call.args == ("--help",):
        return ok(call, stdout="usage: quantize")
    # quantize <in> <out> <tag>
    Path(call.args[1]).write_text(f"quantized {call.args[2]}")
    return ok(call)


def _git(call: Call) -> ProcessResult:
    # git clone <url> <dest>
    dest = call.cwd / call.args[2]
    dest.mkdir()
    (dest / "config.json").write_text("{}")
    return ok(call)


def _python(call: Call) -> ProcessResult:
    # python3 convert.py <src> --outtype f16 --outfile <tmp>
    Path(call.args[-1]).write_text("converted f16")
    return ok(call)


DEFAULT_HANDLERS: dict[str, Handler] = {
    "wget": _wget,
    "tar": _tar,
    "mv": _mv,
    "make": _make,
    "quantize": _quantize,
    "git": _git,
    "python3": _python,
}


def make_executable(path: Path) -> None:
    path.write_text("#!/bin/sh\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


class FakeRunner:
    """Stand-in for :class:`ProcessRunner` that records every call."""

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._handlers: dict[str, Handler] = dict(DEFAULT_HANDLERS)

    def on(self, name: str, handler: Handler) -> None:
        """Replace the behaviour of the tool called ``name``."""
        self._handlers[name] = handler

    def run(self, command, args=(), cwd=None, timeout=None) -> ProcessResult:
        call = Call(str(command), tuple(str(a) for a in args), Path(cwd) if cwd else None)
        self.calls.append(call)
        handler = self._handlers.get(call.name)
        if handler is None:
            return ProcessResult(call.command, call.args, ProcessStatus.MISSING)
        return handler(call)

    def names(self) -> list[str]:
        return [c.name for c in self.calls]

    def count(self, name: str) -> int:
        return self.names().count(name)

    def reduce_calls(self) -> list[Call]:
        """quantize calls other than the ``--help`` verification."""
        return [c for c in self.calls if c.name == "quantize" and c.args != ("--help",)]
