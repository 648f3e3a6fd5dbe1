"""
Unit tests for the validation pipeline (create_handler / RequestHandler).
"""

import asyncio
import json
import re

import pytest

from lambdahttp.config import Policy
from lambdahttp.errors import HTTPConflictError, PolicyError
from lambdahttp.http.request import AbortSignal
from lambdahttp.http.response import HTTPResponse, error_response
from lambdahttp.middleware.pipeline import RequestHandler, create_handler
from lambdahttp.normalized import NormalizedRequest
from lambdahttp.testing import json_request, make_request


ORIGIN = "http://localhost:9999"


async def echo(request, context):
    return {"method": request.method, "path": request.pathname}


def assert_error_body(response, status):
    """Every error body is {"error": {"message", "status"}} with a matching status."""
    body = json.loads(response.body)
    assert response.status == status
    assert body["error"]["status"] == status
    assert isinstance(body["error"]["message"], str)
    return body["error"]


class TestRegistration:
    """Tests for handler registration."""

    def test_requires_handlers(self):
        with pytest.raises(PolicyError):
            create_handler({})

    def test_requires_callables(self):
        with pytest.raises(PolicyError):
            create_handler({"GET": "not a function"})

    def test_rejects_contradictory_policy(self):
        with pytest.raises(PolicyError):
            create_handler({"GET": echo}, require_cors=True, require_same_origin=True)

    def test_methods_upper_cased(self):
        dispatch = create_handler({"get": echo, "Post": echo})
        assert dispatch.methods == ("GET", "POST", "OPTIONS")

    def test_synthetic_handlers_added(self):
        dispatch = create_handler({"GET": echo})
        assert set(dispatch.handlers) == {"GET", "HEAD", "OPTIONS"}

    def test_required_headers_merged_into_allow_headers(self):
        dispatch = create_handler(
            {"GET": echo},
            allow_headers=["X-Foo"],
            require_headers=["x-foo", "X-Bar"],
            require_jwt=True,
        )
        assert dispatch.policy.allow_headers == ("X-Foo", "X-Bar", "Authorization")

    def test_policy_and_overrides(self):
        dispatch = create_handler({"GET": echo}, Policy(max_content_length=10), allow_credentials=True)
        assert dispatch.policy.max_content_length == 10
        assert dispatch.policy.allow_credentials

    def test_instance_is_request_handler(self):
        assert isinstance(create_handler({"GET": echo}), RequestHandler)


class TestDispatch:
    """Tests for handler invocation and coercion."""

    @pytest.mark.asyncio
    async def test_async_handler(self):
        dispatch = create_handler({"GET": echo})
        response = await dispatch(make_request("/items"))
        assert response.status == 200
        assert response.json() == {"method": "GET", "path": "/items"}

    @pytest.mark.asyncio
    async def test_sync_handler(self):
        dispatch = create_handler({"GET": lambda request, context: "hello"})
        response = await dispatch(make_request("/"))
        assert response.text() == "hello"

    @pytest.mark.asyncio
    async def test_single_argument_handler(self):
        dispatch = create_handler({"GET": lambda request: 201})
        assert (await dispatch(make_request("/"))).status == 201

    @pytest.mark.asyncio
    async def test_handler_receives_normalized_request_and_context(self, dev_context):
        seen = {}

        def handler(request, context):
            seen["request"] = request
            seen["context"] = context

        await create_handler({"GET": handler})(make_request("/"), dev_context)

        assert isinstance(seen["request"], NormalizedRequest)
        assert seen["context"] is dev_context

    @pytest.mark.asyncio
    async def test_default_context(self, dev_context):
        dispatch = create_handler({"GET": lambda request, context: context["site"]["name"]}, default_context=dev_context)
        assert (await dispatch(make_request("/"))).text() == "dev-server"

    @pytest.mark.asyncio
    async def test_json_body(self):
        async def create(request, context):
            return {"received": await request.data()}

        response = await create_handler({"POST": create})(json_request({"name": "x"}))
        assert response.json() == {"received": {"name": "x"}}

    @pytest.mark.asyncio
    async def test_reusable(self):
        """Test that one dispatcher serves many requests, concurrently too."""
        dispatch = create_handler({"GET": echo})
        responses = await asyncio.gather(*(dispatch(make_request(f"/{i}")) for i in range(5)))
        assert [r.json()["path"] for r in responses] == [f"/{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_network_error_response_becomes_500(self):
        response = await create_handler({"GET": lambda r, c: error_response()})(make_request("/"))
        assert_error_body(response, 500)

    @pytest.mark.asyncio
    async def test_cookie_writes_become_set_cookie(self):
        def handler(request, context):
            request.set_cookie("session", "abc", http_only=True)
            return "ok"

        response = await create_handler({"GET": handler})(make_request("/"))
        assert response.headers.get_set_cookie()[0].startswith("session=abc")


class TestMethodCheck:
    """Tests for method-not-allowed handling."""

    @pytest.mark.asyncio
    async def test_method_not_allowed(self):
        """Test that an unregistered method lists exactly the supported ones."""
        dispatch = create_handler({"GET": echo, "POST": echo})
        response = await dispatch(make_request("/", method="DELETE"))

        error = assert_error_body(response, 405)
        assert error["message"] == "Unsupported request method: DELETE"
        assert response.headers["Allow"].lower() == "get, post, options"

    @pytest.mark.asyncio
    async def test_synthetic_head(self):
        """Test that HEAD answers 204 with no body when only GET exists."""
        response = await create_handler({"GET": echo})(make_request("/", method="HEAD"))
        assert response.status == 204
        assert response.body is None

    @pytest.mark.asyncio
    async def test_head_not_added_without_get(self):
        response = await create_handler({"POST": echo})(make_request("/", method="HEAD"))
        assert response.status == 405

    @pytest.mark.asyncio
    async def test_preflight(self):
        """Test a browser preflight against declared allow-headers."""
        dispatch = create_handler({"GET": echo, "POST": echo}, allow_headers=["X-Foo", "Authorization"])
        request = make_request("/", method="OPTIONS", headers={
            "Origin": ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Foo",
        })

        response = await dispatch(request)

        assert response.status in (200, 204)
        assert "POST" in response.headers.get_list("Access-Control-Allow-Methods")
        assert "X-Foo" in response.headers.get_list("Access-Control-Allow-Headers")

    @pytest.mark.asyncio
    async def test_custom_options_handler_kept(self):
        dispatch = create_handler({"GET": echo, "OPTIONS": lambda r, c: HTTPResponse("custom")})
        response = await dispatch(make_request("/", method="OPTIONS"))
        assert response.text() == "custom"


class TestHeaderChecks:
    """Tests for required headers and JWTs."""

    @pytest.mark.asyncio
    async def test_missing_authorization_is_401(self):
        dispatch = create_handler({"GET": echo}, require_headers=["Authorization"])
        response = await dispatch(make_request("/"))
        assert_error_body(response, 401)

    @pytest.mark.asyncio
    async def test_missing_other_header_is_400(self):
        dispatch = create_handler({"GET": echo}, require_headers=["X-Api-Key", "X-Tenant"])
        response = await dispatch(make_request("/", headers={"X-Tenant": "t1"}))
        error = assert_error_body(response, 400)
        assert error["details"] == {"missingHeaders": ["X-Api-Key"]}

    @pytest.mark.asyncio
    async def test_required_headers_skipped_for_preflight(self):
        dispatch = create_handler({"GET": echo}, require_headers=["X-Api-Key"])
        assert (await dispatch(make_request("/", method="OPTIONS"))).status == 204
        assert (await dispatch(make_request("/", method="HEAD"))).status == 204

    @pytest.mark.asyncio
    async def test_jwt_missing(self):
        dispatch = create_handler({"GET": echo}, require_jwt=True)
        assert_error_body(await dispatch(make_request("/")), 401)

    @pytest.mark.asyncio
    async def test_jwt_malformed(self):
        dispatch = create_handler({"GET": echo}, require_jwt=True)
        assert_error_body(await dispatch(make_request("/", token="not.a.jwt")), 401)

    @pytest.mark.asyncio
    async def test_jwt_valid(self, jwt_token):
        dispatch = create_handler({"GET": echo}, require_jwt=True)
        assert (await dispatch(make_request("/", token=jwt_token))).status == 200

    @pytest.mark.asyncio
    async def test_jwt_skipped_for_options(self):
        dispatch = create_handler({"GET": echo}, require_jwt=True)
        assert (await dispatch(make_request("/", method="OPTIONS"))).status == 204

    @pytest.mark.asyncio
    async def test_custom_jwt_decoder(self):
        dispatch = create_handler({"GET": echo}, require_jwt=True, jwt_decoder=lambda value: {"payload": {}})
        assert (await dispatch(make_request("/", token="anything"))).status == 200


class TestContentLength:
    """Tests for Content-Length enforcement."""

    @pytest.mark.asyncio
    async def test_too_large(self):
        dispatch = create_handler({"POST": echo}, max_content_length=50000)
        request = make_request("/", method="POST", headers={"Content-Length": "65536"})

        error = assert_error_body(await dispatch(request), 413)

        assert error["message"] == "Max Content-Length is 50000 - sent 65536."
        assert error["details"] == {"contentLength": 65536, "maxContentLength": 50000}

    @pytest.mark.asyncio
    async def test_within_limit(self):
        dispatch = create_handler({"POST": echo}, max_content_length=100)
        assert (await dispatch(json_request({"a": 1}))).status == 200

    @pytest.mark.asyncio
    async def test_length_required(self):
        dispatch = create_handler({"POST": echo}, require_content_length=True)
        request = make_request("/", method="POST", body="abc", headers={"Content-Length": ""})
        del request.headers["Content-Length"]

        assert_error_body(await dispatch(request), 411)

    @pytest.mark.asyncio
    async def test_length_not_required_without_body(self):
        dispatch = create_handler({"POST": echo}, require_content_length=True)
        assert (await dispatch(make_request("/", method="POST"))).status == 200


class TestSearchParams:
    """Tests for required search params."""

    @pytest.mark.asyncio
    async def test_missing(self):
        dispatch = create_handler({"GET": echo}, require_search_params=["page", "size"])
        response = await dispatch(make_request("/", search_params={"page": "1"}))
        error = assert_error_body(response, 400)
        assert error["details"] == {"missingSearchParams": ["size"]}

    @pytest.mark.asyncio
    async def test_present(self):
        dispatch = create_handler({"GET": echo}, require_search_params=["page"])
        assert (await dispatch(make_request("/", search_params={"page": ""}))).status == 200


class TestOriginChecks:
    """Tests for same-origin, CORS and allow-list checks."""

    @pytest.mark.asyncio
    async def test_allowed_credentialed_cors(self, cors_request):
        """Test that an allowed credentialed origin is echoed back."""
        dispatch = create_handler({"GET": echo}, allow_origins=[ORIGIN], allow_credentials=True)
        response = await dispatch(cors_request("/echo", origin=ORIGIN))

        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == ORIGIN
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    @pytest.mark.asyncio
    async def test_disallowed_origin(self, cors_request):
        dispatch = create_handler({"GET": echo}, allow_origins=[ORIGIN])
        response = await dispatch(cors_request(origin="https://evil.example"))
        error = assert_error_body(response, 403)
        assert error["message"] == "Disallowed Origin: https://evil.example."

    @pytest.mark.asyncio
    async def test_regex_allow_list(self, cors_request):
        dispatch = create_handler({"GET": echo}, allow_origins=re.compile(r"^http://localhost:\d+$"))
        assert (await dispatch(cors_request(origin=ORIGIN))).status == 200

    @pytest.mark.asyncio
    async def test_same_origin_bypasses_allow_list(self, same_origin_request):
        dispatch = create_handler({"GET": echo}, allow_origins=[ORIGIN])
        assert (await dispatch(same_origin_request())).status == 200

    @pytest.mark.asyncio
    async def test_require_same_origin(self, cors_request, same_origin_request):
        dispatch = create_handler({"GET": echo}, require_same_origin=True)
        assert (await dispatch(same_origin_request())).status == 200
        assert_error_body(await dispatch(cors_request()), 403)

    @pytest.mark.asyncio
    async def test_require_cors(self, cors_request):
        dispatch = create_handler({"GET": echo}, require_cors=True)
        assert (await dispatch(cors_request())).status == 200
        error = assert_error_body(await dispatch(make_request("/")), 403)
        assert error["message"] == "Must be a CORS request."

    @pytest.mark.asyncio
    async def test_require_credentials(self, jwt_token):
        dispatch = create_handler({"GET": echo}, require_credentials=True)
        assert_error_body(await dispatch(make_request("/")), 401)
        assert (await dispatch(make_request("/", token=jwt_token))).status == 200

    @pytest.mark.asyncio
    async def test_error_responses_get_cors_headers(self, cors_request):
        """Test that browsers can read error bodies cross-origin."""
        dispatch = create_handler({"GET": echo}, allow_origins=[ORIGIN], require_search_params=["q"])
        response = await dispatch(cors_request(origin=ORIGIN))
        assert response.status == 400
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_wildcard_never_with_credentials(self, cors_request):
        dispatch = create_handler(
            {"GET": lambda r, c: HTTPResponse("x", headers={"Access-Control-Allow-Origin": "*"})},
            allow_credentials=True,
        )
        response = await dispatch(cors_request(origin=ORIGIN))
        if response.headers.get("Access-Control-Allow-Credentials") == "true":
            assert response.headers["Access-Control-Allow-Origin"] != "*"


class TestCheckOrder:
    """Tests that failing checks are reported in a fixed order."""

    @pytest.mark.asyncio
    async def test_method_before_headers(self):
        dispatch = create_handler({"GET": echo}, require_headers=["X-Key"])
        assert (await dispatch(make_request("/", method="PUT"))).status == 405

    @pytest.mark.asyncio
    async def test_headers_before_size(self):
        dispatch = create_handler({"POST": echo}, require_headers=["X-Key"], max_content_length=1)
        request = make_request("/", method="POST", body="too long")
        assert (await dispatch(request)).status == 400

    @pytest.mark.asyncio
    async def test_size_before_params(self):
        dispatch = create_handler({"POST": echo}, require_search_params=["q"], max_content_length=1)
        request = make_request("/", method="POST", body="too long")
        assert (await dispatch(request)).status == 413

    @pytest.mark.asyncio
    async def test_params_before_origin(self, cors_request):
        dispatch = create_handler({"GET": echo}, require_search_params=["q"], allow_origins=["https://x.example"])
        assert (await dispatch(cors_request())).status == 400


class TestErrorMapping:
    """Tests for the single catch boundary."""

    @pytest.mark.asyncio
    async def test_raised_http_error(self):
        def handler(request, context):
            raise HTTPConflictError("Already exists", details={"id": 7})

        error = assert_error_body(await create_handler({"GET": handler})(make_request("/")), 409)
        assert error["details"] == {"id": 7}

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_generic(self):
        """Test that internal exception text never reaches the client."""
        def handler(request, context):
            raise KeyError("database password")

        response = await create_handler({"GET": handler})(make_request("/"))

        error = assert_error_body(response, 500)
        assert error["message"] == "An unknown error occurred"
        assert "password" not in response.text()

    @pytest.mark.asyncio
    async def test_logger_sees_every_error(self, recording_logger):
        original = ValueError("bad")

        def handler(request, context):
            raise original

        dispatch = create_handler({"GET": handler}, logger=recording_logger)
        await dispatch(make_request("/"))
        await dispatch(make_request("/", method="PATCH"))

        assert recording_logger.errors[0] is original
        assert recording_logger.errors[1].status == 405
        assert isinstance(recording_logger.calls[0][1], NormalizedRequest)

    @pytest.mark.asyncio
    async def test_failing_logger_does_not_escape(self):
        def broken_logger(error, request):
            raise RuntimeError("logger down")

        dispatch = create_handler({"GET": lambda r, c: 1 / 0}, logger=broken_logger)
        assert_error_body(await dispatch(make_request("/")), 500)

    @pytest.mark.asyncio
    async def test_unbuildable_error_response_falls_back(self):
        def handler(request, context):
            error = HTTPConflictError("Version mismatch")
            error.status = 1
            raise error

        assert_error_body(await create_handler({"GET": handler})(make_request("/")), 500)

    @pytest.mark.asyncio
    async def test_non_request_input(self):
        response = await create_handler({"GET": echo})({"url": "/"})
        assert_error_body(response, 500)


class TestAbort:
    """Tests for abort signal handling."""

    @pytest.mark.asyncio
    async def test_already_aborted(self):
        signal = AbortSignal()
        signal.abort()
        response = await create_handler({"GET": echo})(make_request("/", signal=signal))
        assert_error_body(response, 408)

    @pytest.mark.asyncio
    async def test_abort_cancels_handler(self):
        cancelled = asyncio.Event()

        async def slow(request, context):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        signal = AbortSignal()
        dispatch = create_handler({"GET": slow})
        task = asyncio.ensure_future(dispatch(make_request("/", signal=signal)))
        await asyncio.sleep(0.01)
        signal.abort("client went away")

        response = await asyncio.wait_for(task, timeout=1)

        assert_error_body(response, 408)
        await asyncio.wait_for(cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_handler_cancelled_without_abort_is_500(self, recording_logger):
        """Test that a cancellation raised inside the handler becomes a response."""
        async def cancelled(request, context):
            raise asyncio.CancelledError()

        dispatch = create_handler({"GET": cancelled}, logger=recording_logger)
        response = await dispatch(make_request("/"))

        error = assert_error_body(response, 500)
        assert error["message"] == "An unknown error occurred"
        assert isinstance(recording_logger.errors[0].__cause__, asyncio.CancelledError)

    @pytest.mark.asyncio
    async def test_sync_handler_cancelled_is_500(self):
        def cancelled(request, context):
            raise asyncio.CancelledError()

        response = await create_handler({"GET": cancelled})(make_request("/"))
        assert_error_body(response, 500)
