"""
Shared test fixtures and configuration.
"""

import os
import tempfile

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOCAL_STORAGE_PATH", tempfile.mkdtemp(prefix="fitpath_test_data_"))

from fastapi.testclient import TestClient  # noqa: E402

from fitpath.core.security import PasswordHasher  # noqa: E402
from fitpath.core.tokens import TokenConfig, TokenService  # noqa: E402
from fitpath.services import AdminService, AuthService, OnboardingService  # noqa: E402
from fitpath.storage import LocalStorage, UserRepository, init_user_repository  # noqa: E402


@pytest.fixture
def password():
    """A password that satisfies the password policy."""
    return "Str0ngPassw0rd"


@pytest.fixture
def token_service():
    return TokenService(TokenConfig(secret="unit-test-secret"))


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "data"))


@pytest.fixture
def repository(storage):
    return UserRepository(storage)


@pytest.fixture
def auth_service(repository, token_service, hasher):
    return AuthService(repository, token_service, hasher)


@pytest.fixture
def onboarding_service(repository):
    return OnboardingService(repository)


@pytest.fixture
def admin_service(repository):
    return AdminService(repository)


@pytest.fixture
def client(tmp_path):
    """TestClient backed by a fresh repository in a temp directory."""
    from fitpath.main import app, rate_limiter

    rate_limiter.reset()
    with TestClient(app) as test_client:
        init_user_repository(LocalStorage(str(tmp_path / "api")))
        yield test_client
