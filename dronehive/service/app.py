"""FastAPI application entrypoint for dronehive service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterator, List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from ..errors import DroneHiveError, MissingSupportDirectory
from ..registry.drones import DroneRegistry, FilterMode, find_host
from ..worker import BuildWorker

WorkerFactory = Callable[[str, Path], BuildWorker]


class HealthResponse(BaseModel):
    status: str


class DronesResponse(BaseModel):
    host: str
    drones: List[str]
    assimilating: List[str]
    cloned: List[str]


def _default_registry_factory(host: Path) -> Callable[[], DroneRegistry]:
    def _factory() -> DroneRegistry:
        return DroneRegistry(find_host(host))

    return _factory


def create_app(
    registry_factory: Callable[[], DroneRegistry],
    worker_factory: WorkerFactory = BuildWorker,
) -> FastAPI:
    """Create the FastAPI application exposing drone listing and builds."""

    app = FastAPI(title="dronehive", version="0.1.0")

    async def get_registry() -> DroneRegistry:
        # A fresh registry per request keeps cached paths from going stale.
        return registry_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/drones", response_model=DronesResponse)
    def list_drones(registry: DroneRegistry = Depends(get_registry)) -> DronesResponse:
        return DronesResponse(
            host=str(registry.host),
            drones=list(registry.list_assimilated()),
            assimilating=list(registry.list_assimilated(filter_mode=FilterMode.ASSIMILATING)),
            cloned=registry.list_cloned_only(),
        )

    @app.post("/drones/{name}/build")
    def build_drone(
        name: str, registry: DroneRegistry = Depends(get_registry)
    ) -> StreamingResponse:
        if name not in registry.list_assimilated() and name not in registry.list_cloned_only():
            raise HTTPException(status_code=404, detail=f"Unknown drone {name}")
        worker = worker_factory(name, registry.host)

        def _stream() -> Iterator[str]:
            for line in worker.stream():
                yield line + "\n"
            yield f"exit status {worker.returncode}\n"

        return StreamingResponse(_stream(), media_type="text/plain")

    @app.exception_handler(MissingSupportDirectory)
    async def missing_host_handler(
        _: Any, exc: MissingSupportDirectory
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DroneHiveError)
    async def dronehive_error_handler(
        _: Any, exc: DroneHiveError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host_path: Path, host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app(_default_registry_factory(host_path))
    uvicorn.run(app, host=host, port=port)
