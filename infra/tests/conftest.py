"""
Pytest configuration shared by the unit and E2E suites.

Usage:
    pytest                       # unit tests (Pulumi mocks, no AWS access)
    pytest -m e2e -v             # E2E tests against the deployed stack
"""

from __future__ import annotations

import os

# Set environment variables BEFORE any imports that might load settings
# This is necessary because settings are cached at import time
os.environ.setdefault("APP_MODE", "development")
os.environ.setdefault("LOG_LEVEL", "silent")
os.environ.setdefault("ALARM_EMAIL", "alerts@example.com")
os.environ.setdefault("ENTSOE_API_TOKEN", "test-entsoe-token")
os.environ.setdefault("REDIS_URL", "redis://cache.internal:6379")


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: End-to-end tests requiring deployed infrastructure")
    config.addinivalue_line("markers", "slow: Tests that may take longer to run")
