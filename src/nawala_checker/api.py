"""
REST API for the Nawala checker system (FastAPI).

A thin mapping from HTTP to the shared services. Every response uses the
envelope ``{success, data | error, timestamp}``; unknown routes return 404
``Endpoint not found`` and unhandled errors 500 ``Internal server error``.
"""

from typing import Any, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .enums import LogLevel
from .exceptions import (
    DuplicateDomainError,
    NawalaCheckerError,
    NotFoundError,
    OracleRequestError,
    ValidationError,
)
from .models import utc_now
from .service import Services


class CheckRequest(BaseModel):
    domains: list[str]


class AddDomainRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    checkFrequency: Optional[str] = None


def success(data: Any = None, status_code: int = 200, **extra: Any) -> JSONResponse:
    body = {"success": True, "data": data, **extra, "timestamp": utc_now()}
    return JSONResponse(status_code=status_code, content=body)


def failure(error: str, status_code: int, code: Optional[str] = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if code:
        body["code"] = code
    body["timestamp"] = utc_now()
    return JSONResponse(status_code=status_code, content=body)


def _status_for(error: NawalaCheckerError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (ValidationError, DuplicateDomainError)):
        return 400
    return 500


API_INDEX = {
    "service": "Nawala Live API",
    "version": __version__,
    "description": "Domain blocking checker service",
    "endpoints": {
        "Health & Status": {
            "GET /health": "Health check",
            "GET /domains/stats": "Domain statistics",
        },
        "Domain Checking": {
            "GET /check/{domain}": "Check single domain",
            "POST /check": "Check multiple domains (max 10)",
            "GET /results": "Get last check results",
            "GET /reports": "Get hourly reports",
        },
        "Domain Management": {
            "GET /domains": "Get all domains",
            "POST /domains": "Add new domain",
            "GET /domains/{name}": "Get domain by name",
            "PATCH /domains/{name}/toggle": "Toggle domain active status",
            "DELETE /domains/{name}": "Delete domain",
            "GET /domains/{name}/history": "Get domain check history",
        },
    },
    "examples": {
        "Check multiple domains": {"POST /check": {"domains": ["example.com", "reddit.com"]}},
        "Add domain": {
            "POST /domains": {
                "name": "example.com",
                "description": "Test domain",
                "checkFrequency": "hourly",
            }
        },
        "Get active domains only": "GET /domains?active=true",
    },
}


def create_app(services: Services) -> FastAPI:
    app = FastAPI(title="Nawala Live API", version=__version__)
    app.state.services = services
    logger = services.logger
    engine = services.engine
    registry = services.registry
    history = services.history

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.log(
            LogLevel.DEBUG,
            "API",
            f"{request.method} {request.url.path}",
            {"status_code": response.status_code},
        )
        return response

    @app.exception_handler(NawalaCheckerError)
    async def _domain_error(request: Request, exc: NawalaCheckerError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.log_error("API", f"{request.method} {request.url.path} failed", error=exc)
        return failure(exc.message, status_code, exc.code)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return failure(f"Invalid request: {detail}", 400, "invalid_request")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return failure("Endpoint not found", 404)
        return failure(str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
        logger.log_error("API", "Server error", error=exc)
        return failure("Internal server error", 500)

    @app.get("/")
    async def index() -> JSONResponse:
        return success(API_INDEX)

    @app.get("/health")
    async def health() -> JSONResponse:
        return success({
            "status": "OK",
            "service": "Nawala Live API",
            "engine": engine.state.value,
        })

    @app.get("/check/{domain}")
    async def check_one(domain: str) -> JSONResponse:
        result = await engine.check_domain(domain)
        return success({
            "domain": result.domain,
            "blocked": result.blocked,
            "timestamp": result.timestamp,
        })

    @app.post("/check")
    async def check_many(body: CheckRequest) -> JSONResponse:
        if not body.domains:
            return failure("Domains array is required", 400, "empty_batch")
        try:
            batch = await engine.check_domains(body.domains)
        except OracleRequestError as e:
            return failure(e.message, 500, e.code)
        return success(batch.to_dict())

    @app.get("/results")
    async def results() -> JSONResponse:
        cached = services.oracle.cache.all()
        return success({name: entry.to_dict() for name, entry in cached.items()})

    @app.get("/reports")
    async def reports(limit: int = Query(10, ge=1)) -> JSONResponse:
        items = await history.recent_reports(limit)
        return success([r.to_dict() for r in items], count=len(items))

    @app.get("/domains")
    async def list_domains(active: bool = False) -> JSONResponse:
        domains = await registry.list(active_only=active)
        return success([d.to_dict() for d in domains], count=len(domains))

    @app.post("/domains")
    async def add_domain(body: AddDomainRequest) -> JSONResponse:
        if not body.name or not body.name.strip():
            return failure("Domain name is required", 400, "invalid_request")
        domain = await registry.add(body.name, body.description, body.checkFrequency)
        return success(domain.to_dict(), status_code=201)

    # Registered before /domains/{name} so "stats" is never read as a name
    @app.get("/domains/stats")
    async def domain_stats() -> JSONResponse:
        stats = await registry.statistics()
        return success(stats.to_dict())

    @app.get("/domains/{name}")
    async def get_domain(name: str) -> JSONResponse:
        domain = await registry.get(name)
        if domain is None:
            raise NotFoundError(name)
        return success(domain.to_dict())

    @app.patch("/domains/{name}/toggle")
    async def toggle_domain(name: str) -> JSONResponse:
        domain = await registry.toggle_active(name)
        return success(domain.to_dict())

    @app.delete("/domains/{name}")
    async def delete_domain(name: str) -> JSONResponse:
        domain = await registry.remove(name)
        return success(domain.to_dict(), message="Domain deleted successfully")

    @app.get("/domains/{name}/history")
    async def domain_history(name: str, limit: int = Query(50, ge=1)) -> JSONResponse:
        items = await history.recent(registry.validator.normalize(name), limit)
        return success([r.to_dict() for r in items], count=len(items))

    return app
