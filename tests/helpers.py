from typing import Any

from inference import InferenceBackend

CORS_HEADER_NAMES = (
    "access-control-allow-origin",
    "access-control-allow-methods",
    "access-control-allow-headers",
)


class FakeBackend(InferenceBackend):
    """Records every run and answers with a fixed result or a callable's output."""

    def __init__(self, result: Any = None, error: Exception | None = None, fail_on: int | None = None):
        self.result = result
        self.error = error
        self.fail_on = fail_on
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def run(self, model: str, params: dict[str, Any]) -> Any:
        self.calls.append((model, params))
        if self.error is not None and (self.fail_on is None or self.fail_on == len(self.calls) - 1):
            raise self.error
        if callable(self.result):
            return self.result(model, params)
        return self.result


def assert_cors(response) -> None:
    for name in CORS_HEADER_NAMES:
        assert name in response.headers
    assert response.headers["access-control-allow-origin"] == "*"
    assert "OPTIONS" in response.headers["access-control-allow-methods"]
