"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from screenpop.config import AuditSettings, SecuritySettings, Settings
from screenpop.core.auth import TokenService
from screenpop.core.directory import CustomerDirectory
from screenpop.main import create_app

TEST_SECRET = "test-secret-key-123456789abc"
ALLOWED_ORIGIN = "http://localhost:3000"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def audit_file(tmp_path: Path) -> Path:
    """Audit log location inside a not-yet-existing directory."""
    return tmp_path / "logs" / "screenpop-audit.log"


@pytest.fixture
def settings_factory(audit_file: Path) -> Callable[..., Settings]:
    """Build isolated Settings; keyword overrides go to the top level."""

    def build(rate_limit_max: int = 5, rate_limit_window: int = 60000, **overrides: Any) -> Settings:
        values: Dict[str, Any] = {
            "environment": "development",
            "enabled": True,
            "log_level": "DEBUG",
            "security": SecuritySettings(
                jwt_secret=TEST_SECRET,
                allowed_origins=[ALLOWED_ORIGIN, "http://localhost:3001"],
                rate_limit_window=rate_limit_window,
                rate_limit_max=rate_limit_max,
            ),
            "audit": AuditSettings(audit_log=audit_file),
        }
        values.update(overrides)
        return Settings(**values)

    return build


@pytest.fixture
def test_settings(settings_factory: Callable[..., Settings]) -> Settings:
    return settings_factory()


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture
def test_client(app: FastAPI) -> Generator[TestClient, None, None]:
    """FastAPI test client with test configuration."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret=TEST_SECRET)


@pytest.fixture
def admin_token(token_service: TokenService) -> str:
    return token_service.issue(id="admin-001", email="admin@company.com", role="admin")


@pytest.fixture
def qa_token(token_service: TokenService) -> str:
    return token_service.issue(id="qa-001", email="qa@company.com", role="qa")


@pytest.fixture
def viewer_token(token_service: TokenService) -> str:
    return token_service.issue(id="viewer-001", email="viewer@company.com", role="viewer")


@pytest.fixture
def directory() -> CustomerDirectory:
    return CustomerDirectory.from_file()


@pytest.fixture
def read_audit(audit_file: Path) -> Callable[[], List[Dict[str, Any]]]:
    """Return every audit entry written so far."""

    def read() -> List[Dict[str, Any]]:
        if not audit_file.exists():
            return []
        with open(audit_file, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    return read


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    """Helper to create Authorization headers for TestClient."""

    def build(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return build
