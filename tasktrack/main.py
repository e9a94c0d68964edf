import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth import (
    clear_session_cookie,
    hash_password,
    require_user,
    set_session_cookie,
    token_from_request,
)
from .config import Settings
from .entities import User
from .errors import AuthenticationError, TaskTrackError
from .logging_setup import setup_logging
from .schemas import LoginIn, RegisterIn, TaskIn, TaskPatch
from .store import Store, build_store
from .validation import (
    clean_new_task,
    clean_patch,
    clean_registration,
    parse_status,
    parse_task_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@router.post("/register")
async def register(
    payload: Optional[RegisterIn] = None,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    username, email, password = clean_registration(payload or RegisterIn(), settings.min_password_length)
    password_hash = await asyncio.to_thread(hash_password, password, settings.bcrypt_rounds)
    user = store.create_user(username, email, password_hash)
    logger.info("Registered user_id=%s", user.id)
    return {"success": True, "message": "User registered successfully"}


@router.post("/login")
async def login(
    response: Response,
    payload: Optional[LoginIn] = None,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    payload = payload or LoginIn()
    user = None
    email = (payload.email or "").strip()
    if email and payload.password:
        user = await asyncio.to_thread(store.find_user_by_credentials, email, payload.password)
    if user is None:
        logger.warning("Failed login attempt")
        raise AuthenticationError("Invalid credentials")
    session = store.create_session(user.id)
    set_session_cookie(response, session, secure=settings.cookie_secure)
    logger.info("Login user_id=%s", user.id)
    return {"success": True, "user": user.public(), "token": session.token}


@router.post("/logout")
async def logout(request: Request, response: Response, store: Store = Depends(get_store)):
    token = token_from_request(request)
    if token:
        session = store.get_session(token)
        store.delete_session(token)
        if session is not None:
            logger.info("Logout user_id=%s", session.user_id)
    clear_session_cookie(response)
    return {"success": True, "message": "Logged out successfully"}


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

@router.get("/tasks")
async def list_tasks(
    status: Optional[str] = None,
    user: User = Depends(require_user),
    store: Store = Depends(get_store),
):
    tasks = store.list_tasks_for_user(user.id, parse_status(status))
    return {"success": True, "tasks": [t.to_dict() for t in tasks]}


@router.get("/tasks/stats")
async def task_stats(user: User = Depends(require_user), store: Store = Depends(get_store)):
    tasks = store.list_tasks_for_user(user.id)
    completed = sum(1 for t in tasks if t.completed)
    return {
        "success": True,
        "stats": {"total": len(tasks), "completed": completed, "pending": len(tasks) - completed},
    }


@router.post("/tasks")
async def create_task(
    payload: Optional[TaskIn] = None,
    user: User = Depends(require_user),
    store: Store = Depends(get_store),
):
    title, description = clean_new_task(payload or TaskIn())
    task = store.create_task(user.id, title, description)
    logger.info("Created task_id=%s user_id=%s", task.id, user.id)
    return {"success": True, "task": task.to_dict()}


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    payload: Optional[TaskPatch] = None,
    user: User = Depends(require_user),
    store: Store = Depends(get_store),
):
    patch = clean_patch(payload or TaskPatch())
    task = store.update_task(user.id, parse_task_id(task_id), patch)
    logger.info("Updated task_id=%s fields=%s", task.id, sorted(patch))
    return {"success": True, "task": task.to_dict()}


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, user: User = Depends(require_user), store: Store = Depends(get_store)):
    tid = parse_task_id(task_id)
    store.delete_task(user.id, tid)
    logger.info("Deleted task_id=%s user_id=%s", tid, user.id)
    return {"success": True, "message": "Task deleted successfully"}


@router.get("/health")
async def health():
    return {"success": True, "status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskTrackError)
    async def _tasktrack_error(request: Request, exc: TaskTrackError):
        return _failure(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        logger.debug("Rejected request body: %s", exc.errors())
        return _failure(400, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _failure(exc.status_code, str(exc.detail))


def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.store.close()

    app = FastAPI(title="Task Tracker", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.include_router(router)
    _install_error_handlers(app)
    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    setup_logging(console_level=settings.log_level, log_dir=settings.log_dir)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)
