# Bootstrap control API for a node host.
from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Literal, Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from chainboot.app.context import (
    AppContext,
    ContextError,
    create_context,
    get_context,
    release_context,
)
from chainboot.app.orchestrator import BootstrapOrchestrator
from chainboot.app.settings import BootstrapSettings
from chainboot.domain.errors import (
    BootstrapError,
    ConcurrencyError,
    ConfigurationError,
    ResourceError,
)
from chainboot.utils.logging import configure_root

log = logging.getLogger("rest_api.bootstrap")

ERROR_STATUS = {
    ConcurrencyError: 409,
    ResourceError: 507,
    ConfigurationError: 422,
}
CONTEXT_LOCK = threading.Lock()


def _default_context() -> AppContext:
    return create_context(BootstrapSettings.from_env())


# Tests replace this to inject fake transport and free-space checks.
CONTEXT_FACTORY: Callable[[], AppContext] = _default_context


# ---------- Models ----------
class ModeRequest(BaseModel):
    mode: Literal["cloud", "file"]


class FileRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Local path of a bootstrap .zip archive")


class BootstrapStatusModel(BaseModel):
    mode: Literal["cloud", "file"]
    file_path: str = ""
    running: bool
    stage: Optional[Literal["stage_one", "stage_two"]] = None
    progress: int = 0
    status_text: str = ""
    cancelled: bool = False
    config_merged: bool = False
    install_prepared: bool = False
    last_error: str = ""


class CommandResponse(BaseModel):
    ok: bool
    message: str
    status: BootstrapStatusModel


# ---------- Context ----------
def current_context() -> AppContext:
    with CONTEXT_LOCK:
        try:
            return get_context()
        except ContextError:
            return CONTEXT_FACTORY()


def orchestrator() -> BootstrapOrchestrator:
    return current_context().get_orchestrator()


def status_model(orch: BootstrapOrchestrator) -> BootstrapStatusModel:
    return BootstrapStatusModel(**orch.status().to_dict())


def command_response(orch: BootstrapOrchestrator, message: str) -> CommandResponse:
    return CommandResponse(ok=True, message=message, status=status_model(orch))


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_root()
    try:
        yield
    finally:
        release_context()


app = FastAPI(title="Chain Bootstrap API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(BootstrapError)
async def bootstrap_error_handler(request: Request, exc: BootstrapError) -> JSONResponse:
    status_code = 400
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    log.warning("%s %s rejected [%s]: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "message": exc.message, "hint": exc.hint},
    )


# ---------- Auth Helper ----------
def require_key(x_api_key: Optional[str]):
    api_key = current_context().settings.api_key
    if api_key and x_api_key != api_key:
        raise HTTPException(401, "Unauthorized")


# ---------- Bootstrap ----------
@app.get("/bootstrap", response_model=BootstrapStatusModel)
def bootstrap_status(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    return status_model(orchestrator())


@app.put("/bootstrap/mode", response_model=CommandResponse)
def bootstrap_set_mode(req: ModeRequest, x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    orch = orchestrator()
    orch.change_mode(req.mode)
    return command_response(orch, "Bootstrap mode set")


@app.put("/bootstrap/file", response_model=CommandResponse)
def bootstrap_set_file(req: FileRequest, x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    if not Path(req.path).expanduser().exists():
        raise ConfigurationError(f"Path does not exist {req.path}", "Select an existing .zip file.")
    orch = orchestrator()
    orch.change_file_path(req.path)
    return command_response(orch, "Bootstrap file selected")


@app.post("/bootstrap/stage", response_model=CommandResponse, status_code=202)
def bootstrap_stage(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    orch = orchestrator()
    orch.start("stage_one")
    return command_response(orch, "Bootstrap stage I started")


@app.post("/bootstrap/install", response_model=CommandResponse, status_code=202)
def bootstrap_install(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    orch = orchestrator()
    orch.start("stage_two")
    return command_response(orch, "Bootstrap stage II started")


@app.post("/bootstrap/cancel", response_model=CommandResponse, status_code=202)
def bootstrap_cancel(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    orch = orchestrator()
    orch.cancel()
    return command_response(orch, "Bootstrap cancel requested")


@app.delete("/bootstrap/staging", response_model=CommandResponse)
def bootstrap_cleanup(x_api_key: Optional[str] = Header(None)):
    require_key(x_api_key)
    orch = orchestrator()
    orch.clear_staging()
    return command_response(orch, "Bootstrap staging removed")
