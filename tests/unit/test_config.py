"""
Unit tests for configuration, platform context helpers and error logging.
"""

import json
import logging
from types import SimpleNamespace

import pytest

from lambdahttp.config import DevServerConfig, Policy
from lambdahttp.context import dev_context, lookup
from lambdahttp.errors import HTTPForbiddenError, HTTPInternalServerError, PolicyError
from lambdahttp.middleware.logging import ErrorLogger, build_error_log
from lambdahttp.normalized import NormalizedRequest
from lambdahttp.testing import make_request


class TestPolicy:
    """Tests for the Policy dataclass."""

    def test_defaults(self):
        policy = Policy()
        assert policy.allow_origins is None
        assert policy.allow_headers == ()
        assert not policy.allow_credentials
        policy.validate()

    def test_lists_become_tuples(self):
        policy = Policy(allow_origins=["https://a.example"], allow_headers=["X-Foo"], require_headers="X-Key")
        assert policy.allow_origins == ("https://a.example",)
        assert policy.allow_headers == ("X-Foo",)
        assert policy.require_headers == ("X-Key",)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Policy().allow_credentials = True

    @pytest.mark.parametrize("kwargs", [
        {"require_cors": True, "require_same_origin": True},
        {"max_content_length": -1},
        {"max_content_length": "100"},
        {"max_content_length": True},
        {"logger": "not callable"},
        {"jwt_decoder": None},
    ])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(PolicyError):
            Policy(**kwargs).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LAMBDA_HTTP_ALLOW_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("LAMBDA_HTTP_ALLOW_CREDENTIALS", "true")
        monkeypatch.setenv("LAMBDA_HTTP_MAX_CONTENT_LENGTH", "1024")
        monkeypatch.setenv("LAMBDA_HTTP_REQUIRE_HEADERS", "X-Key")

        policy = Policy.from_env()

        assert policy.allow_origins == ("https://a.example", "https://b.example")
        assert policy.allow_credentials
        assert policy.max_content_length == 1024
        assert policy.require_headers == ("X-Key",)

    def test_from_env_wildcard_and_overrides(self, monkeypatch):
        monkeypatch.setenv("LAMBDA_HTTP_ALLOW_ORIGINS", "*")
        logger = ErrorLogger()
        policy = Policy.from_env(logger=logger)
        assert policy.allow_origins == "*"
        assert policy.logger is logger

    def test_from_env_empty(self, monkeypatch):
        for name in ("ALLOW_ORIGINS", "MAX_CONTENT_LENGTH", "ALLOW_CREDENTIALS"):
            monkeypatch.delenv(f"LAMBDA_HTTP_{name}", raising=False)
        policy = Policy.from_env()
        assert policy.allow_origins is None
        assert policy.max_content_length is None


class TestDevServerConfig:
    """Tests for DevServerConfig."""

    def test_site_url(self):
        assert DevServerConfig(host="0.0.0.0", port=3000).site_url == "http://0.0.0.0:3000"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LAMBDA_HTTP_PORT", "9000")
        monkeypatch.setenv("LAMBDA_HTTP_FUNCTIONS_DIR", str(tmp_path))
        config = DevServerConfig.from_env()
        assert config.port == 9000
        assert config.functions_dir == str(tmp_path)
        config.validate()

    def test_validate_port(self, tmp_path):
        with pytest.raises(ValueError):
            DevServerConfig(port=70000, functions_dir=str(tmp_path)).validate()

    def test_validate_functions_dir(self, tmp_path):
        with pytest.raises(ValueError):
            DevServerConfig(functions_dir=str(tmp_path / "missing")).validate()


class TestContext:
    """Tests for context lookups."""

    def test_lookup_mapping(self):
        assert lookup({"site": {"url": "https://x"}}, "site", "url") == "https://x"

    def test_lookup_attributes(self):
        context = SimpleNamespace(site=SimpleNamespace(url="https://x"))
        assert lookup(context, "site", "url") == "https://x"

    def test_lookup_missing(self):
        assert lookup({"site": None}, "site", "url", default="-") == "-"
        assert lookup(None, "anything") is None

    def test_dev_context_is_fresh(self):
        first, second = dev_context(), dev_context()
        first["params"]["id"] = "1"
        assert second["params"] == {}
        assert first["site"]["url"] == "http://localhost:8888"
        assert first["requestId"] == "0"


class TestErrorLogger:
    """Tests for the ready-made error logger."""

    def test_build_error_log(self, dev_context):
        request = NormalizedRequest(make_request("/items"), dev_context)
        error = HTTPInternalServerError("boom", cause=KeyError("id"))

        entry = build_error_log(error, request)

        assert entry.method == "GET"
        assert entry.url == "http://localhost:8888/items"
        assert entry.status == 500
        assert entry.error_type == "HTTPInternalServerError"
        assert entry.cause == "KeyError: 'id'"

    def test_client_errors_logged_at_info(self, caplog):
        caplog.set_level(logging.INFO, logger="lambdahttp.errors")
        ErrorLogger()(HTTPForbiddenError("nope"), make_request("/"))

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.exc_info is None

    def test_unexpected_errors_logged_at_error(self, caplog):
        ErrorLogger()(RuntimeError("bug"))
        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info is not None

    def test_json_format(self, caplog):
        ErrorLogger(log_format="json")(RuntimeError("bug"), make_request("/x"))
        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["error_type"] == "RuntimeError"
        assert payload["status"] == 500
