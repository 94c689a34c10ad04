"""
Shared pytest fixtures for pkgbadges tests.
"""

import os
import sys

import pytest

# Add functions directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "functions"))


def pytest_configure(config):
    """Set environment before test collection.

    boto3 clients need a region; the HTTP client must not pool so that
    patched httpx transports are picked up by every request.
    """
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_REGION", "us-east-1")

    os.environ["USE_CONNECTION_POOLING"] = "false"


@pytest.fixture(autouse=True)
def aws_credentials():
    """Set fake AWS credentials for all tests."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    os.environ["AWS_REGION"] = "us-east-1"


@pytest.fixture(autouse=True)
def reset_request_cache():
    """Clear cached upstream responses between tests."""
    from collectors.request_cache import clear_cache

    clear_cache()
    yield
    clear_cache()


@pytest.fixture(autouse=True)
def reset_cloudwatch_client():
    """Drop the lazily created CloudWatch client between tests."""
    import shared.metrics as metrics_module

    metrics_module._cloudwatch = None
    yield
    metrics_module._cloudwatch = None


class FakeFetcher:
    """Stand-in for send_and_cache_request that replays canned responses.

    responses is either a list (served in order) or a callable taking
    (url, options) and returning a RawResponse or raising.
    """

    def __init__(self, responses):
        self._responses = responses
        self.calls = []

    async def __call__(self, url, options=None):
        self.calls.append((url, options or {}))
        if callable(self._responses):
            return self._responses(url, options or {})
        return self._responses[len(self.calls) - 1]


@pytest.fixture
def make_fetcher():
    """Factory fixture building FakeFetcher instances."""
    return FakeFetcher
