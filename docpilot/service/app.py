"""FastAPI application entrypoint for docpilot service mode."""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import load_config
from ..errors import ConfigError, GenerationError
from ..models import ChangeSet
from ..orchestrator import Orchestrator, UpdateOutcome


class ChangesRequest(BaseModel):
    paths: List[str]


class ChangesResponse(BaseModel):
    modules: List[str]
    types_changed: bool
    components_changed: bool
    services_changed: bool


class GenerateResponse(BaseModel):
    pages: int
    written: List[str]
    unchanged: List[str]
    types_synced: bool
    manifest_written: bool


class UpdateRequest(BaseModel):
    modules: List[str] = Field(default_factory=list)
    types_changed: bool = False
    components_changed: bool = False
    services_changed: bool = False
    enhance: bool = True
    commit: Optional[bool] = None


class UpdateResponse(BaseModel):
    status: str
    changes: ChangesResponse
    pages_written: int
    enhanced: List[str] = Field(default_factory=list)
    enhancement_skipped: Optional[str] = None
    committed: bool = False


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator_factory(config_path: Path) -> Callable[[], Orchestrator]:
    def _factory() -> Orchestrator:
        return Orchestrator(load_config(config_path))

    return _factory


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] | None = None,
    *,
    config_path: Path | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing docpilot operations."""

    factory = orchestrator_factory or _default_orchestrator_factory(config_path or Path.cwd())
    app = FastAPI(title="DocPilot Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        # Fresh per request so configuration edits are picked up.
        return factory()

    async def _in_executor(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/changes", response_model=ChangesResponse)
    async def classify_changes(
        payload: ChangesRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ChangesResponse:
        return _changes_response(orchestrator.changes_from_paths(payload.paths))

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GenerateResponse:
        result = await _in_executor(orchestrator.run_generate)
        return GenerateResponse(
            pages=len(result.pages),
            written=result.written,
            unchanged=result.unchanged,
            types_synced=result.types_synced,
            manifest_written=result.manifest_written,
        )

    @app.post("/update", response_model=UpdateResponse)
    async def update(
        payload: UpdateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> UpdateResponse:
        changes = ChangeSet.of(
            payload.modules,
            types_changed=payload.types_changed,
            components_changed=payload.components_changed,
            services_changed=payload.services_changed,
        )
        outcome: UpdateOutcome = await _in_executor(
            orchestrator.run_update,
            changes,
            enhance=payload.enhance,
            commit=payload.commit,
        )
        generation = outcome.generation
        return UpdateResponse(
            status="ok",
            changes=_changes_response(changes),
            pages_written=len(generation.written) if generation else 0,
            enhanced=list(outcome.enhancement.enhanced) if outcome.enhancement else [],
            enhancement_skipped=outcome.enhancement_skipped,
            committed=outcome.committed,
        )

    @app.exception_handler(GenerationError)
    async def generation_error_handler(_: Any, exc: GenerationError) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc),
                "failures": [{"path": f.path, "detail": f.detail} for f in exc.failures],
            },
        )

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def _changes_response(changes: ChangeSet) -> ChangesResponse:
    data: Dict[str, Any] = changes.to_dict()
    return ChangesResponse(**data)


def run_service(
    host: str = "0.0.0.0", port: int = 8000, *, config_path: Path | None = None
) -> None:  # pragma: no cover - integration path
    app = create_app(config_path=config_path)
    uvicorn.run(app, host=host, port=port)
