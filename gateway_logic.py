import time
from collections.abc import Mapping
from typing import Any

from errors import BackendFailure
from inference import InferenceBackend
from logging_config import get_logger
from models import (
    AssistantMessage,
    ChatCompletionResponse,
    ChatRequest,
    Choice,
    Embedding,
    EmbeddingRequest,
    EmbeddingResponse,
    Endpoints,
    ModelCard,
    ModelList,
    ServiceInfo,
    Usage,
)

logger = get_logger(__name__)

CHAT_PATH = "/v1/chat/completions"
EMBEDDINGS_PATH = "/v1/embeddings"
MODELS_PATH = "/v1/models"
DOCUMENTATION_URL = (
    "https://developers.cloudflare.com/workers-ai/configuration/open-ai-compatibility/"
)

MODEL_CATALOG: tuple[ModelCard, ...] = (
    ModelCard(id="@cf/meta/llama-3.3-70b-instruct-fp8-fast"),
    ModelCard(id="@cf/meta/llama-3.1-70b-instruct"),
    ModelCard(id="@cf/meta/llama-3-8b-instruct"),
    ModelCard(id="@cf/baai/bge-large-en-v1.5"),
    ModelCard(id="@cf/baai/bge-base-en-v1.5"),
)


def service_info() -> ServiceInfo:
    return ServiceInfo(
        message="OpenAI-compatible Workers AI API",
        endpoints=Endpoints(chat=CHAT_PATH, embeddings=EMBEDDINGS_PATH, models=MODELS_PATH),
        documentation=DOCUMENTATION_URL,
    )


def list_models() -> ModelList:
    """Build the listing envelope from the fixed catalog."""
    return ModelList(data=list(MODEL_CATALOG))


def unwrap_result(result: Any, field: str) -> Any:
    """Return ``result[field]`` for wrapped backend results, else the bare result."""
    if isinstance(result, Mapping) and field in result:
        return result[field]
    return result


def normalize_reply(result: Any) -> Any:
    return unwrap_result(result, "response")


def normalize_embedding(result: Any) -> Any:
    return unwrap_result(result, "data")


def build_chat_response(model: str, content: Any) -> ChatCompletionResponse:
    """Build OpenAI-style chat completion envelope."""
    now = time.time()
    return ChatCompletionResponse(
        id=f"chatcmpl-{int(now * 1000)}",
        created=int(now),
        model=model,
        choices=[
            Choice(
                index=0,
                message=AssistantMessage(content=content),
                finish_reason="stop",
            )
        ],
        usage=Usage(),
    )


async def create_chat_completion(
    backend: InferenceBackend, request: ChatRequest
) -> ChatCompletionResponse:
    """Run the chat model and translate its answer. Raises BackendFailure."""
    try:
        result = await backend.run(request.model, request.inference_params())
    except Exception as e:
        logger.error("Chat completion error", model=request.model, error=str(e), exc_info=True)
        raise BackendFailure("Failed to generate completion", str(e) or "Unknown error") from e

    return build_chat_response(request.model, normalize_reply(result))


async def create_embeddings(
    backend: InferenceBackend, request: EmbeddingRequest
) -> EmbeddingResponse:
    """
    Embed every input sequentially, one backend call per element.
    The first failure aborts the whole batch.
    """
    inputs = request.inputs()
    data: list[Embedding] = []
    for index, text in enumerate(inputs):
        try:
            result = await backend.run(request.model, {"text": text})
        except Exception as e:
            logger.error(
                "Embeddings error", model=request.model, index=index, error=str(e), exc_info=True
            )
            raise BackendFailure("Failed to generate embeddings", str(e) or "Unknown error") from e
        data.append(Embedding(embedding=normalize_embedding(result), index=index))

    logger.info("Embeddings generated", model=request.model, count=len(data))
    return EmbeddingResponse(data=data, model=request.model)
