"""
pytest configuration and fixtures.
"""

from typing import Any, Dict, List, Tuple

import jwt
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lambdahttp import dev_context as make_dev_context
from lambdahttp.testing import make_request


FUNCTIONS_DIR = Path(__file__).parent / "fixtures" / "functions"


@pytest.fixture
def functions_dir() -> Path:
    """Directory of handler modules used by loader and dev server tests."""
    return FUNCTIONS_DIR


@pytest.fixture
def dev_context() -> Dict[str, Any]:
    """A fresh development platform context."""
    return make_dev_context()


@pytest.fixture
def cors_request():
    """Factory for a cross-origin browser request."""
    def factory(url: str = "/echo", origin: str = "http://localhost:9999", **kwargs):
        headers = {"Origin": origin, "Sec-Fetch-Site": "cross-site"}
        headers.update(kwargs.pop("headers", None) or {})
        return make_request(url, headers=headers, referrer=origin + "/", **kwargs)
    return factory


@pytest.fixture
def same_origin_request():
    """Factory for a same-origin browser request."""
    def factory(url: str = "/echo", **kwargs):
        headers = {"Sec-Fetch-Site": "same-origin"}
        headers.update(kwargs.pop("headers", None) or {})
        return make_request(url, headers=headers, **kwargs)
    return factory


class RecordingLogger:
    """Policy.logger stand-in that remembers every call."""

    def __init__(self):
        self.calls: List[Tuple[BaseException, Any]] = []

    def __call__(self, error, request=None):
        self.calls.append((error, request))

    @property
    def errors(self) -> List[BaseException]:
        return [error for error, _ in self.calls]


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def jwt_token() -> str:
    """A signed HS256 token; the default decoder never checks the key."""
    return jwt.encode({"sub": "user-1", "name": "Test User"}, "test-secret-key-that-is-long-enough-for-hs256", algorithm="HS256")
