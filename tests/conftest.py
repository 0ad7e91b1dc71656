"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults must be set before anything imports app settings.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("PERPLEXITY_API_KEY", "pplx-test-key-123")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "5")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "300")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from app.core import rate_limit as rate_limit_module


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Give every test a fresh, empty process-wide limiter."""
    rate_limit_module.set_rate_limiter(None)
    yield
    rate_limit_module.set_rate_limiter(None)
