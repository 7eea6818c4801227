"""Tests for the Workers AI backend client."""

import json

import httpx
import pytest

from errors import InferenceError
from inference import WorkersAIBackend


def make_backend(handler) -> WorkersAIBackend:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.cloudflare.test"
    )
    return WorkersAIBackend(account_id="acct", api_token="secret", client=client)


class TestWorkersAIBackend:
    """Tests for WorkersAIBackend.run."""

    @pytest.mark.asyncio
    async def test_posts_params_to_run_endpoint(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": {"response": "hi"}, "success": True, "errors": []})

        backend = make_backend(handler)
        result = await backend.run("@cf/meta/llama-3-8b-instruct", {"messages": [], "stream": False})
        await backend.aclose()

        assert result == {"response": "hi"}
        assert seen["path"] == "/client/v4/accounts/acct/ai/run/@cf/meta/llama-3-8b-instruct"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {"messages": [], "stream": False}

    @pytest.mark.asyncio
    async def test_unwrapped_json_returned_as_is(self):
        backend = make_backend(lambda request: httpx.Response(200, json=[0.1, 0.2]))

        assert await backend.run("@cf/baai/bge-base-en-v1.5", {"text": "x"}) == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_event_stream_returned_as_text(self):
        body = 'data: {"response": "M"}\n\ndata: [DONE]\n\n'

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

        backend = make_backend(handler)

        assert await backend.run("m", {"messages": [], "stream": True}) == body

    @pytest.mark.asyncio
    async def test_http_error_raises_with_upstream_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={"result": None, "success": False, "errors": [{"code": 5007, "message": "No such model"}]},
            )

        backend = make_backend(handler)

        with pytest.raises(InferenceError) as exc_info:
            await backend.run("@cf/unknown", {"text": "x"})

        assert exc_info.value.status_code == 400
        assert "No such model" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"result": None, "success": False, "errors": [{"message": "capacity"}]}
            )

        backend = make_backend(handler)

        with pytest.raises(InferenceError, match="capacity"):
            await backend.run("m", {"text": "x"})

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        backend = make_backend(handler)

        with pytest.raises(InferenceError, match="connection refused"):
            await backend.run("m", {"text": "x"})

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_without_result_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "errors": [{"message": "rate limited"}]})

        backend = make_backend(handler)

        with pytest.raises(InferenceError, match="rate limited"):
            await backend.run("m", {"text": "x"})
