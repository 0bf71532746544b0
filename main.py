"""
FastAPI application entry point.

`create_app()` builds a fully wired application: logging, the list-result
cache store, error envelopes, middleware and routers. The module-level
`app` is what uvicorn serves.
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from routers import expenses, todos, trainings, users
from core.cache import build_cache_store
from core.config import settings
from core.database import check_db_connection, init_db
from core.exceptions import register_exception_handlers
from core.logging import setup_logging
from core.rate_limit import RateLimitMiddleware, check_rate_limit_backend
from core.security_headers import SecurityHeadersMiddleware
import logging
import time

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="PZ Server",
        description="Personal tracking API: expenses, todos, training plans and weekly schedules",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # One store per application; handlers reach it through core.cache.get_cache
    app.state.cache = build_cache_store()

    register_exception_handlers(app)

    @app.on_event("startup")
    def create_tables():
        if settings.DB_AUTO_CREATE:
            init_db()
            logger.info("Database tables ensured")

    @app.on_event("startup")
    def check_rate_limiter():
        if settings.RATE_LIMIT_ENABLED:
            check_rate_limit_backend()

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing information."""
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                exc_info=True,
                extra={
                    "extra_fields": {
                        "method": request.method,
                        "path": request.url.path,
                        "error": str(e),
                    }
                }
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - {response.status_code}",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": request.client.host if request.client else None,
                    "status_code": response.status_code,
                    "process_time_ms": round(process_time * 1000, 2),
                }
            }
        )
        response.headers["X-Process-Time"] = str(process_time)
        return response

    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(
            RateLimitMiddleware,
            limit=settings.RATE_LIMIT_REQUESTS,
            window=settings.RATE_LIMIT_WINDOW_SECONDS,
        )

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS outermost so even 429s carry the headers. Credentials (cookies)
    # require an explicit origin, never "*".
    allowed_origins = [settings.CORS_ORIGIN] if settings.CORS_ORIGIN else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/")
    def welcome():
        return {"success": True, "message": "Welcome to PZ Server"}

    @app.get("/health")
    def health():
        """
        Health check for load balancers and uptime monitors.

        Returns:
            - 200: database reachable
            - 503: database unavailable
        """
        if not check_db_connection():
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "unavailable"},
            )
        return {"status": "healthy", "timestamp": time.time()}

    @app.get("/ping")
    def ping():
        """No dependencies checked; just confirms the API is responding."""
        return {"pong": True}

    app.include_router(users.router)
    app.include_router(expenses.router)
    app.include_router(todos.router)
    app.include_router(trainings.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.PORT)
