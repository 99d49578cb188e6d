import logging
import time
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from forum.core import config
from forum.core.security import (
    BodySizeLimitMiddleware,
    RateLimiter,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from forum.models.api import FIELD_ERRORS
from forum.services.graph_service import GraphService
from forum.services.persona_service import PersonaService
from forum.routers import brainstorm

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = config.LOG_LEVEL):
    if level == "NONE":
        logging.disable(logging.CRITICAL)
        return
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        reason = (error.get("ctx") or {}).get("error")
        if reason is not None:
            message = str(reason)
        else:
            field = str(error["loc"][-1]) if error.get("loc") else ""
            message = FIELD_ERRORS.get(field, error.get("msg", "Invalid value"))
        if message not in details:
            details.append(message)
    logger.debug(f"Validation error on {request.url.path}: {details}")
    return JSONResponse(status_code=400, content={"error": "Invalid input", "details": details})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if config.is_development() else "Something went wrong",
        },
    )


def create_app(
    graph_service: Optional[GraphService] = None,
    persona_service: Optional[PersonaService] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Forum ready with personalities: optimist, pessimist, realist")
        logger.info(f"Rate limiting: {app.state.rate_limiter.max_requests} requests per {config.RATE_LIMIT_WINDOW}")
        logger.info(f"CORS origins: {', '.join(config.allowed_origins())}")
        yield
        await app.state.persona_service.close()

    app = FastAPI(title="Forum", lifespan=lifespan)

    # Services
    app.state.graph_service = graph_service or GraphService()
    app.state.persona_service = persona_service or PersonaService(api_key=config.GEMINI_API_KEY)
    app.state.rate_limiter = rate_limiter or RateLimiter(config.RATE_LIMIT_MAX, config.RATE_LIMIT_WINDOW_SECONDS)
    app.state.started_at = time.monotonic()

    # Middleware, innermost first
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)
    app.add_middleware(BodySizeLimitMiddleware, max_size=config.MAX_BODY_SIZE)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(brainstorm.router)
    return app


app = create_app()


def run():
    import uvicorn
    import argparse

    parser = argparse.ArgumentParser(description="Run the Forum server")
    parser.add_argument("--port", type=int, default=config.PORT, help="Port to run the service on")
    parser.add_argument("--host", type=str, default=config.HOST, help="Host to bind to")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    run()
