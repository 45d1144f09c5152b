from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from jose import JWTError
import logging

from dietcoach.core.background import BackgroundTaskRunner
from dietcoach.core.config import get_settings
from dietcoach.core.database import engine, Base
from dietcoach.core.security import decode_access_token
from dietcoach import models  # ensure models are registered with SQLAlchemy
from dietcoach.routers import auth, chat, user, memories
from dietcoach.services.chat import StreamRegistry

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")

settings = get_settings()

PUBLIC_API_PREFIXES = ("/api/auth/",)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.task_runner = BackgroundTaskRunner(shutdown_timeout=settings.BACKGROUND_SHUTDOWN_TIMEOUT)
    if settings.RESUMABLE_STREAMS_ENABLED:
        app.state.stream_registry = StreamRegistry(app.state.task_runner)
    else:
        logger.info("Resumable streams are disabled")

    yield

    await app.state.task_runner.shutdown()
    await engine.dispose()


app = FastAPI(
    title="Diet Coach API",
    description="Diet and fitness coaching chat with intake logging and long-term memory",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def require_session(request: Request, call_next):
    path = request.url.path
    if path.startswith("/api/") and not path.startswith(PUBLIC_API_PREFIXES):
        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token:
            return JSONResponse(status_code=401, content={"detail": "Not authenticated"})
        try:
            decode_access_token(token)
        except JWTError:
            return JSONResponse(status_code=401, content={"detail": "Could not validate credentials"})
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url}")
    try:
        response = await call_next(request)
        logger.info(f"Response status: {response.status_code}")
        return response
    except Exception as e:
        logger.exception(f"Unhandled exception: {e}")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(chat.router)
app.include_router(user.router)
app.include_router(memories.router)


@app.get("/ping", response_class=PlainTextResponse)
async def ping():
    return "pong"


@app.get("/health")
async def health_check():
    return {"status": "ok"}
