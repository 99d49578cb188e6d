import html
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from forum.core import config

logger = logging.getLogger(__name__)

SUSPICIOUS_PATTERNS = [
    "script", "javascript", "eval", "function", "alert",
    "document", "window", "exec", "system", "cmd",
]

TRUNCATED_TEXT_LENGTH = 200

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "style-src 'self' 'unsafe-inline'; "
    "script-src 'self'; "
    "img-src 'self' data: https:; "
    "connect-src 'self'; "
    "font-src 'self'; "
    "object-src 'none'; "
    "media-src 'self'; "
    "frame-src 'none'"
)


def sanitize_text(value: str) -> str:
    """HTML-escapes user text before it is stored or sent to the model."""
    escaped = html.escape(value, quote=True)
    return escaped.replace("/", "&#x2F;").replace("\\", "&#x5C;").replace("`", "&#96;")


def client_address(request: Request) -> str:
    # One trusted proxy hop: the last forwarded address is the client
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[-1].strip()
    if request.client:
        return request.client.host
    return "unknown"


def log_suspicious_prompt(prompt: str, address: str) -> bool:
    lowered = prompt.lower()
    if any(pattern in lowered for pattern in SUSPICIOUS_PATTERNS):
        logger.warning(f"Suspicious prompt detected from {address}: \"{prompt[:100]}...\"")
        return True
    return False


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float


class RateLimiter:
    """Fixed-window request counter keyed by client address and path."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.windows: Dict[str, Tuple[int, float]] = {}

    def hit(self, key: str) -> RateLimitResult:
        now = self.clock()
        count, started = self.windows.get(key, (0, now))
        if now - started >= self.window_seconds:
            count, started = 0, now
        count += 1
        self.windows[key] = (count, started)
        if len(self.windows) > 10000:
            self._prune(now)
        return RateLimitResult(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_after=max(0.0, started + self.window_seconds - now),
        )

    def _prune(self, now: float):
        expired = [k for k, (_, started) in self.windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self.windows[key]


def is_rate_limit_exempt(method: str, path: str) -> bool:
    return method == "GET" and path.startswith("/api/session")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, prefix: str = "/api"):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith(self.prefix) or is_rate_limit_exempt(request.method, path):
            return await call_next(request)

        address = client_address(request)
        result = self.limiter.hit(f"{address}:{path}")
        headers = {
            "RateLimit-Limit": str(result.limit),
            "RateLimit-Remaining": str(result.remaining),
            "RateLimit-Reset": str(math.ceil(result.reset_after)),
        }
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for IP: {address} on {path}")
            headers["Retry-After"] = str(max(1, math.ceil(result.reset_after)))
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests from this IP, please try again later.",
                    "retryAfter": math.ceil(self.limiter.window_seconds),
                },
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > self.max_size:
            return JSONResponse(
                status_code=413,
                content={
                    "error": "Request entity too large",
                    "message": "Please reduce the size of your request",
                },
            )
        return await call_next(request)


def truncate_node_texts(content: dict) -> dict:
    truncated = dict(content)
    for key in ("nodes", "newNodes"):
        nodes = content.get(key)
        if not isinstance(nodes, list):
            continue
        truncated[key] = [
            {**node, "text": node["text"][:TRUNCATED_TEXT_LENGTH] + "..."}
            if isinstance(node, dict) and len(node.get("text", "")) > TRUNCATED_TEXT_LENGTH
            else node
            for node in nodes
        ]
    return truncated


class SizeLimitedJSONResponse(JSONResponse):
    """JSON response that shortens node text when the body exceeds the ceiling."""

    def render(self, content) -> bytes:
        body = super().render(content)
        limit = config.RESPONSE_SIZE_LIMIT
        if len(body) > limit and isinstance(content, dict):
            logger.warning(f"Response size ({len(body)} bytes) exceeds limit ({limit} bytes)")
            body = super().render(truncate_node_texts(content))
        return body
