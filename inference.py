"""Inference backends: the "run model X with parameters P" capability."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from errors import InferenceError
from logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.cloudflare.com"


class InferenceBackend(ABC):
    """Executes a named model against a parameter mapping."""

    @abstractmethod
    async def run(self, model: str, params: dict[str, Any]) -> Any:
        """Return the backend result: a wrapped object or a bare value."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class WorkersAIBackend(InferenceBackend):
    """Async wrapper for the Workers AI REST endpoint ``/ai/run/{model}``."""

    def __init__(
        self,
        *,
        account_id: str,
        api_token: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._account_id = account_id
        self._client = client or httpx.AsyncClient(
            base_url=base_url or DEFAULT_BASE_URL, timeout=timeout
        )
        self._headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }

    async def aclose(self) -> None:
        await self._client.aclose()

    def run_path(self, model: str) -> str:
        # model ids look like "@cf/meta/llama-3-8b-instruct" and keep their slashes
        return f"/client/v4/accounts/{self._account_id}/ai/run/{model}"

    async def run(self, model: str, params: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(
                self.run_path(model), headers=self._headers, json=params
            )
        except httpx.HTTPError as e:
            raise InferenceError(f"Workers AI request failed: {e}") from e

        logger.debug("Workers AI responded", model=model, status=response.status_code)
        return self._result_or_error(response)

    @staticmethod
    def _result_or_error(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if response.status_code >= 400:
            raise InferenceError(
                _error_message(response) or response.reason_phrase,
                status_code=response.status_code,
            )

        # streamed runs answer with text/event-stream; hand the body back untouched
        if "application/json" not in content_type:
            return response.text

        payload = response.json()
        if not isinstance(payload, dict):
            return payload
        if payload.get("success") is False:
            raise InferenceError(_join_errors(payload.get("errors")) or "Workers AI run failed")
        if "result" not in payload:
            return payload
        return payload["result"]


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        return _join_errors(payload.get("errors")) or response.text
    return response.text


def _join_errors(errors: Any) -> str:
    if not errors:
        return ""
    messages = []
    for err in errors:
        if isinstance(err, dict):
            messages.append(str(err.get("message", err)))
        else:
            messages.append(str(err))
    return "; ".join(messages)
