from fastapi.testclient import TestClient
from forum.core.security import CONTENT_SECURITY_POLICY, RateLimiter
from forum.main import create_app
from forum.services.persona_service import PersonaService


def make_client():
    return TestClient(create_app(persona_service=PersonaService(api_key=None), rate_limiter=RateLimiter(1000, 60)))


def test_security_headers():
    response = make_client().get("/api/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert response.headers["Content-Security-Policy"] == CONTENT_SECURITY_POLICY


def test_security_headers_on_errors():
    response = make_client().get("/api/session/nope")
    assert response.status_code == 400
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "frame-src 'none'" in response.headers["Content-Security-Policy"]
