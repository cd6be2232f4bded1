import time
import traceback
import uuid
from contextlib import asynccontextmanager
from os import environ

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from streamcart.api import health
from streamcart.api.errors import app_error_handler, app_validation_exception_handler
from streamcart.api.v1.routers import live_analytics, live_chat, live_session
from streamcart.api.ws import live_socket
from streamcart.app_config import AppEnvironConfig, get_app_environ_config
from streamcart.domain.live.runtime import build_live_runtime
from streamcart.schemas.init_schemas import init_schema
from streamcart.shared.api.utils import api_failure, init_logger
from streamcart.shared.storage.mongo import get_mongo_manager
from streamcart.shared.storage.redis import get_redis_manager
from streamcart.utils.app_errors import AppError, AppErrorCode


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000

            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=AppErrorCode.E_INTERNAL_ERROR.value,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


def configure_logfire(server: FastAPI, cfg: AppEnvironConfig) -> bool:
    if not cfg.LOGFIRE_ENABLE:
        return False

    logger.info("Logfire initializing")

    logfire.configure(
        token=cfg.LOGFIRE_TOKEN,
        service_name=cfg.LOGFIRE_SERVICE_NAME,
        service_version=environ.get("BUILD_COMMIT") or "dev",
    )

    logger.info("Logfire instrument fastapi")
    logfire.instrument_fastapi(server, capture_headers=True)

    logger.info("Logfire instrument mongo")
    logfire.instrument_pymongo(capture_statement=cfg.DEBUG)

    logger.info("Logfire instrument pydantic")
    logfire.instrument_pydantic()
    return True


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")

    # Initialize MongoDB schemas and Beanie ODM
    await init_schema()

    server.state.live_runtime = build_live_runtime()
    await server.state.live_runtime.start()

    configure_logfire(server, get_app_environ_config())

    yield

    logger.info("Application shutdown...")

    await server.state.live_runtime.shutdown()
    await get_redis_manager().close_all()
    get_mongo_manager().close_all()


def register_routes(server: FastAPI) -> None:
    server.include_router(health.router)
    server.include_router(live_session.router, prefix="/api/v1")
    server.include_router(live_analytics.router, prefix="/api/v1")
    server.include_router(live_chat.router, prefix="/api/v1")
    server.include_router(live_socket.router)


def create_app(use_lifespan: bool = True) -> FastAPI:
    cfg = get_app_environ_config()

    server = FastAPI(
        version="1.0",
        title="StreamCart Live API",
        docs_url="/docs" if cfg.DEBUG else None,
        redoc_url=None,
        openapi_url="/openapi.json" if cfg.DEBUG else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan if use_lifespan else None,
    )

    server.add_middleware(HTTPLoggingMiddleware)

    server.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=cfg.API_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    server.add_exception_handler(RequestValidationError, app_validation_exception_handler)  # type: ignore
    server.add_exception_handler(AppError, app_error_handler)  # type: ignore

    register_routes(server)
    return server


app = create_app()


def build_granian_kwargs():
    cfg = get_app_environ_config()
    kwargs = {
        "interface": "asgi",
        "address": cfg.API_HOST,
        "port": cfg.API_PORT,
        "workers": cfg.API_WORKERS,
        "reload": cfg.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("streamcart.main:app", **granian_kwargs).serve()
