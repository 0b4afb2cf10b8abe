import pytest
from pydantic import ValidationError

from config.settings import DEV_JWT_SECRET, Settings

PRODUCTION_SECRET = "production-secret-that-is-long-enough-0123"


def test_unknown_environment_is_rejected():
    with pytest.raises(ValidationError, match="app_env"):
        Settings(app_env="prod")


def test_production_requires_configured_secret():
    with pytest.raises(ValidationError, match="JWT_SECRET must be configured in production"):
        Settings(app_env="production", jwt_secret=DEV_JWT_SECRET)


def test_environment_flags():
    assert Settings(app_env="production", jwt_secret=PRODUCTION_SECRET).is_production
    assert not Settings(app_env="test").is_production
    assert not Settings(app_env="development").is_production


def test_short_secret_is_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(jwt_secret="too-short")
