"""
FastAPI Service Factory
Every tourist safety service is built here so they share CORS, /health,
/metrics and the `{success, message, data}` response envelope.
"""

import logging
import time
from typing import Any, Callable, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.errors import SafetyError
from libs.config import configure_logging

logger = logging.getLogger(__name__)


def success_response(data: Any = None, message: str = "OK") -> dict:
    return {"success": True, "message": message, "data": jsonable_encoder(data)}


def error_response(status_code: int, message: str, data: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": jsonable_encoder(data)},
    )


def route_template(request: Request) -> str:
    """`/api/v1/alerts/{alert_id}` rather than the concrete path."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class ServiceMetrics:
    """Request metrics for one service plus the registries its domain modules own."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.registry = CollectorRegistry()
        self.extra_registries: List[CollectorRegistry] = []

        self.request_count = Counter(
            "service_requests_total",
            "Total HTTP requests handled by the service",
            ["service", "method", "path", "http_status"],
            registry=self.registry,
        )
        self.request_latency = Histogram(
            "service_request_duration_seconds",
            "Request latency in seconds",
            ["service", "path"],
            registry=self.registry,
        )

    def record_request(self, method: str, path: str, status_code: int, duration: float):
        self.request_count.labels(
            service=self.service_name, method=method, path=path, http_status=status_code
        ).inc()
        self.request_latency.labels(service=self.service_name, path=path).observe(duration)

    def include_registry(self, registry: CollectorRegistry) -> None:
        if registry is not self.registry and registry not in self.extra_registries:
            self.extra_registries.append(registry)

    def render(self) -> str:
        return "".join(
            generate_latest(r).decode("utf-8") for r in [self.registry, *self.extra_registries]
        )


class ServiceAppConfig:
    """Settings for one service app. CORS is wide open unless origins are given."""

    def __init__(
        self,
        title: str,
        description: str,
        service_name: str,
        version: str = "1.0.0",
        allow_origins: Optional[List[str]] = None,
        enable_metrics: bool = True,
        lifespan: Optional[Callable] = None,
    ):
        self.title = title
        self.description = description
        self.service_name = service_name
        self.version = version
        self.allow_origins = allow_origins or ["*"]
        self.enable_metrics = enable_metrics
        self.lifespan = lifespan


class FastAPIServiceFactory:
    """
    Builds a configured FastAPI app; the service module then adds its router.

        factory = FastAPIServiceFactory(ServiceAppConfig(...))
        app = factory.create_app()
        factory.include_registry(domain_registry)
        app.include_router(router)
    """

    def __init__(self, config: ServiceAppConfig):
        self.config = config
        self.metrics = ServiceMetrics(config.service_name) if config.enable_metrics else None

    def create_app(self) -> FastAPI:
        configure_logging()

        app = FastAPI(
            title=self.config.title,
            description=self.config.description,
            version=self.config.version,
            lifespan=self.config.lifespan,
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._add_error_handlers(app)
        self._add_health_endpoint(app)
        if self.metrics:
            self._add_metrics_middleware(app)
            self._add_metrics_endpoint(app)

        app.state.metrics = self.metrics
        app.state.service_name = self.config.service_name
        return app

    def _add_error_handlers(self, app: FastAPI):
        """Domain errors carry their own status; body validation failures are 400."""

        @app.exception_handler(SafetyError)
        async def safety_error_handler(request: Request, exc: SafetyError):
            if exc.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            return error_response(exc.status_code, exc.message, exc.details)

        @app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            return error_response(400, "Invalid request", exc.errors())

        @app.exception_handler(PydanticValidationError)
        async def pydantic_validation_handler(request: Request, exc: PydanticValidationError):
            errors = exc.errors(include_url=False, include_context=False)
            return error_response(400, "Invalid request", errors)

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            return error_response(exc.status_code, str(exc.detail))

    def _add_metrics_middleware(self, app: FastAPI):
        metrics = self.metrics

        @app.middleware("http")
        async def prometheus_middleware(request: Request, call_next):
            start = time.time()
            response = await call_next(request)
            metrics.record_request(
                method=request.method,
                path=route_template(request),
                status_code=response.status_code,
                duration=time.time() - start,
            )
            return response

    def _add_metrics_endpoint(self, app: FastAPI):
        metrics = self.metrics

        @app.get("/metrics")
        async def metrics_endpoint():
            return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)

    def _add_health_endpoint(self, app: FastAPI):
        service_name = self.config.service_name

        @app.get("/health")
        async def health_check():
            return {"status": "ok", "service": service_name}

    def include_registry(self, registry: CollectorRegistry) -> None:
        """Export a domain module's registry on this service's /metrics."""
        if not self.metrics:
            raise ValueError("Metrics not enabled for this service")
        self.metrics.include_registry(registry)
