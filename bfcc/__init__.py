from .backend import (
    BuildBackend,
    BuildError,
    CCompilerBackend,
    CompilationFailed,
    RunResult,
    RunTimeout,
    ToolchainNotFound,
)
from .bf_interpreter import BrainfuckInterpreter, StepLimitExceeded, render_dump
from .transpiler import BracketError, CTranspiler, TranslationError, translate

__all__ = [
    "BracketError",
    "BrainfuckInterpreter",
    "BuildBackend",
    "BuildError",
    "CCompilerBackend",
    "CTranspiler",
    "CompilationFailed",
    "RunResult",
    "RunTimeout",
    "StepLimitExceeded",
    "ToolchainNotFound",
    "TranslationError",
    "render_dump",
    "translate",
]
