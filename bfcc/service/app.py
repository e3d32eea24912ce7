from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field, validator

from bfcc.backend import BuildBackend, CCompilerBackend, CompilationFailed, RunTimeout, ToolchainNotFound
from bfcc.bf_interpreter import BrainfuckInterpreter, StepLimitExceeded
from bfcc.config import CELL_WIDTHS, DEFAULT_MAX_STEPS, DEFAULT_RUN_TIMEOUT
from bfcc.transpiler import BracketError, CTranspiler


ENGINES = {"native", "interpreter"}


class TranslateRequest(BaseModel):
    source: str = ""
    strict: bool = False
    cell_width: int = 1

    @validator("cell_width")
    def validate_cell_width(cls, value: int) -> int:
        if value not in CELL_WIDTHS:
            raise ValueError(f"cell_width must be one of {', '.join(map(str, CELL_WIDTHS))}")
        return value


class TranslateResponse(BaseModel):
    code: str
    cell_width: int
    strict: bool


class RunRequest(TranslateRequest):
    input: str = ""
    engine: str = "native"
    max_steps: Optional[int] = Field(default=None, ge=1)

    @validator("engine")
    def validate_engine(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in ENGINES:
            raise ValueError("engine must be either 'native' or 'interpreter'")
        return normalized


class RunResponse(BaseModel):
    engine: str
    stdout: str
    exit_status: int


def _translate(payload: TranslateRequest) -> str:
    transpiler = CTranspiler(cell_width=payload.cell_width, strict=payload.strict)
    try:
        return transpiler.transpile(payload.source)
    except BracketError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


def create_app(
    backend: Optional[BuildBackend] = None,
    *,
    step_cap: int = DEFAULT_MAX_STEPS,
    run_timeout: Optional[float] = DEFAULT_RUN_TIMEOUT,
) -> FastAPI:
    build_backend = backend or CCompilerBackend()
    app = FastAPI(title="bfcc API", version="0.1.0")

    @app.get("/api/instructions")
    def list_instructions() -> Dict[str, List[str]]:
        return CTranspiler().instruction_table()

    @app.post("/api/translate", response_model=TranslateResponse)
    def translate(payload: TranslateRequest) -> TranslateResponse:
        code = _translate(payload)
        return TranslateResponse(code=code, cell_width=payload.cell_width, strict=payload.strict)

    @app.post("/api/run", response_model=RunResponse)
    def run(payload: RunRequest) -> RunResponse:
        input_bytes = payload.input.encode("utf-8")
        if payload.engine == "interpreter":
            if payload.strict:
                _translate(payload)
            interpreter = BrainfuckInterpreter(cell_width=payload.cell_width)
            try:
                output = interpreter.run(
                    payload.source,
                    input_data=input_bytes,
                    max_steps=payload.max_steps or step_cap,
                )
            except BracketError as exc:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=str(exc),
                ) from exc
            except StepLimitExceeded as exc:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=str(exc),
                ) from exc
            except IndexError as exc:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=str(exc),
                ) from exc
            return RunResponse(engine=payload.engine, stdout=output.decode("latin-1"), exit_status=0)

        code = _translate(payload)
        with tempfile.TemporaryDirectory(prefix="bfcc-") as workdir:
            source_path = Path(workdir) / "program.c"
            source_path.write_text(code, encoding="ascii")
            try:
                result = build_backend.build_and_run(
                    source_path,
                    input_data=input_bytes,
                    timeout=run_timeout,
                )
            except ToolchainNotFound as exc:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=str(exc),
                ) from exc
            except CompilationFailed as exc:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=str(exc),
                ) from exc
            except RunTimeout as exc:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=str(exc),
                ) from exc
        return RunResponse(
            engine=payload.engine,
            stdout=result.stdout.decode("latin-1"),
            exit_status=result.returncode,
        )

    return app


__all__ = ["create_app"]
