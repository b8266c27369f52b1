"""FastAPI application for operating the recruiting agents."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
import logging
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from hireflow.api.routes import router as operator_router
from hireflow.config.settings import get_app_settings
from hireflow.observability.logging import configure_logging
from hireflow.observability.metrics import CONTENT_TYPE, render_metrics, start_metrics_server
from hireflow.observability.telemetry import setup_tracing, shutdown_tracing
from hireflow.runtime import Runtime, build_runtime

logger = logging.getLogger(__name__)


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Build the app; a prebuilt runtime is used as-is, otherwise one is created at startup."""
    settings = runtime.settings if runtime is not None else get_app_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ----- startup -----
        active = runtime
        if active is None:
            configure_logging(settings.log_level, service_name=settings.service_name)
            setup_tracing(settings.service_name, service_version=settings.app_version)
            if settings.metrics_port:
                start_metrics_server(settings.metrics_port)
            active = build_runtime(settings)
        app.state.runtime = active
        active.start()
        logger.info(
            "service.start",
            extra={"extra": {"env": settings.app_env, "service": settings.service_name}},
        )
        try:
            yield
        finally:
            # ----- shutdown -----
            await active.stop()
            if runtime is None:
                shutdown_tracing()
            logger.info(
                "service.stop",
                extra={"extra": {"env": settings.app_env, "service": settings.service_name}},
            )

    app = FastAPI(
        title="HireFlow Agents API",
        version=settings.app_version,
        description="Background recruiting agents, proposals, and pipeline history",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_request_id(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Attach a request ID to every request/response and log basic access info."""
        req_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        request.state.req_id = req_id
        logger.info(
            "http.request",
            extra={"extra": {"req_id": req_id, "method": request.method, "path": request.url.path}},
        )
        response = await call_next(request)
        response.headers["x-request-id"] = req_id
        logger.info(
            "http.response",
            extra={"extra": {"req_id": req_id, "status_code": response.status_code}},
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowlist(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["meta"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(render_metrics(), media_type=CONTENT_TYPE)

    app.include_router(operator_router, tags=["agents"])
    return app
