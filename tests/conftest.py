"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - component/  : Component tests (mocked repositories, TestClient)
    - unit/       : Unit tests (pure functions, no I/O)
    - contracts/  : Test data factories
"""
import os
import sys
from typing import Dict, List

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

# Test environment, set before any core.config import
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use-in-production")
os.environ.setdefault("OUTCOME_SWEEP_ENABLED", "false")

from core.jwt_manager import JWTManager, TokenClaims, reset_jwt_manager  # noqa: E402
from tests.contracts.campaign.data_contract import FundraisingTestDataFactory  # noqa: E402

TEST_JWT_SECRET = os.environ["JWT_SECRET"]


# =============================================================================
# Auth
# =============================================================================

@pytest.fixture
def jwt_manager() -> JWTManager:
    """JWT manager installed as the application-wide singleton"""
    manager = JWTManager(secret_key=TEST_JWT_SECRET)
    reset_jwt_manager(manager)
    yield manager
    reset_jwt_manager(None)


@pytest.fixture
def auth_headers(jwt_manager):
    """Build an Authorization header for a user id and role"""
    def _headers(user_id: str, role: str = "donor") -> Dict[str, str]:
        token = jwt_manager.create_access_token(TokenClaims(user_id=user_id, role=role))
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def factory() -> FundraisingTestDataFactory:
    """Test data factory"""
    return FundraisingTestDataFactory()


# =============================================================================
# Assertion Helpers
# =============================================================================

class AssertionHelpers:
    """Custom assertion helpers for tests"""

    @staticmethod
    def assert_http_success(response, expected_status: int = 200):
        """Assert HTTP response is successful"""
        assert response.status_code == expected_status, \
            f"Expected {expected_status}, got {response.status_code}: {response.text}"

    @staticmethod
    def assert_has_fields(data: Dict, fields: List[str]):
        """Assert dict has required fields"""
        missing = [f for f in fields if f not in data]
        assert not missing, f"Missing fields: {missing}"

    @staticmethod
    def assert_error_envelope(response, expected_status: int, error_code: str = None):
        """Assert the standard error envelope"""
        assert response.status_code == expected_status, \
            f"Expected {expected_status}, got {response.status_code}: {response.text}"
        body = response.json()
        assert body["success"] is False
        assert body["message"]
        if error_code:
            assert body["error_code"] == error_code


@pytest.fixture
def assertions() -> AssertionHelpers:
    """Provide assertion helpers"""
    return AssertionHelpers()


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")
