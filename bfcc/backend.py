from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .config import Settings


logger = logging.getLogger(__name__)

# Serializes compiler invocations.
COMPILE_LOCK = threading.Lock()


class BuildError(Exception):
    pass


class ToolchainNotFound(BuildError):
    pass


class CompilationFailed(BuildError):
    def __init__(self, command: Sequence[str], returncode: int, stderr: str) -> None:
        message = f"Compilation failed with status {returncode}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr


class RunTimeout(BuildError):
    def __init__(self, message: str, timeout: Optional[float]) -> None:
        super().__init__(message)
        self.timeout = timeout


@dataclass
class RunResult:
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""


class BuildBackend(ABC):
    """Turns generated C source into an executable and runs it."""

    @abstractmethod
    def build(self, source_path: Path, executable_path: Optional[Path] = None) -> Path:
        ...

    def run(
        self,
        executable_path: Path,
        input_data: Optional[bytes] = None,
        capture: bool = True,
        timeout: Optional[float] = None,
    ) -> RunResult:
        command = [str(Path(executable_path).resolve())]
        logger.info("Running %s", command[0])
        try:
            if not capture:
                completed = subprocess.run(command, input=input_data, timeout=timeout)
                return RunResult(returncode=completed.returncode)
            completed = subprocess.run(
                command,
                input=input_data or b"",
                capture_output=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise RunTimeout(f"Program did not finish within {timeout} seconds", timeout) from exc
        return RunResult(
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    def build_and_run(
        self,
        source_path: Path,
        input_data: Optional[bytes] = None,
        capture: bool = True,
        timeout: Optional[float] = None,
    ) -> RunResult:
        with COMPILE_LOCK:
            executable = self.build(source_path)
        return self.run(executable, input_data=input_data, capture=capture, timeout=timeout)


class CCompilerBackend(BuildBackend):
    def __init__(self, compiler: Optional[str] = None, cflags: Optional[Sequence[str]] = None) -> None:
        settings = Settings.from_env()
        self.compiler = compiler or settings.compiler
        self.cflags: Tuple[str, ...] = tuple(settings.cflags if cflags is None else cflags)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CCompilerBackend":
        return cls(compiler=settings.compiler, cflags=settings.cflags)

    def is_available(self) -> bool:
        return shutil.which(self.compiler) is not None

    def build(self, source_path: Path, executable_path: Optional[Path] = None) -> Path:
        source_path = Path(source_path)
        if executable_path is None:
            executable_path = source_path.with_suffix("")
            if executable_path == source_path:
                executable_path = source_path.with_name(source_path.name + ".out")
        executable_path = Path(executable_path)

        compiler_path = shutil.which(self.compiler)
        if compiler_path is None:
            raise ToolchainNotFound(f"C compiler not found: {self.compiler}")

        command = [compiler_path, *self.cflags, "-o", str(executable_path), str(source_path)]
        logger.info("Compiling %s", " ".join(command))
        completed = subprocess.run(command, capture_output=True, text=True)
        if completed.returncode != 0:
            raise CompilationFailed(command, completed.returncode, completed.stderr)
        if completed.stderr:
            logger.debug("Compiler diagnostics:\n%s", completed.stderr)
        return executable_path


__all__ = [
    "BuildBackend",
    "BuildError",
    "CCompilerBackend",
    "COMPILE_LOCK",
    "CompilationFailed",
    "RunResult",
    "RunTimeout",
    "ToolchainNotFound",
]
