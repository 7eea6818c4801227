import os
from contextlib import asynccontextmanager
from types import MappingProxyType
from typing import TypeVar

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from errors import BadRequest, GatewayError, InternalError, MethodNotAllowed, NotFound
from gateway_logic import (
    CHAT_PATH,
    EMBEDDINGS_PATH,
    MODELS_PATH,
    create_chat_completion,
    create_embeddings,
    list_models,
    service_info,
)
from inference import DEFAULT_BASE_URL, InferenceBackend, WorkersAIBackend
from logging_config import get_logger, setup_logging
from models import (
    ChatCompletionResponse,
    ChatRequest,
    EmbeddingRequest,
    EmbeddingResponse,
    ErrorResponse,
    ModelList,
    ServiceInfo,
)

# Config from environment
PORT = int(os.getenv("PORT", "8080"))
WORKERS_AI_BASE_URL = os.getenv("WORKERS_AI_BASE_URL", DEFAULT_BASE_URL)
CLOUDFLARE_ACCOUNT_ID = os.getenv("CLOUDFLARE_ACCOUNT_ID", "")
CLOUDFLARE_API_TOKEN = os.getenv("CLOUDFLARE_API_TOKEN", "")
BACKEND_TIMEOUT = float(os.getenv("BACKEND_TIMEOUT", "30.0"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")

setup_logging(LOG_LEVEL, json_logs=LOG_FORMAT == "json")
logger = get_logger(__name__)

CORS_HEADERS = MappingProxyType(
    {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }
)

# body fields whose absence gets a dedicated error message
REQUIRED_FIELD_ERRORS = {
    "messages": "Messages array is required",
    "input": "Input is required",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the Workers AI backend for the app lifetime and close it on shutdown."""
    if not CLOUDFLARE_ACCOUNT_ID:
        logger.warning("CLOUDFLARE_ACCOUNT_ID is not set; inference calls will fail")
    app.state.backend = WorkersAIBackend(
        account_id=CLOUDFLARE_ACCOUNT_ID,
        api_token=CLOUDFLARE_API_TOKEN,
        base_url=WORKERS_AI_BASE_URL,
        timeout=BACKEND_TIMEOUT,
    )
    logger.info("Gateway started", backend_url=WORKERS_AI_BASE_URL)
    yield
    await app.state.backend.aclose()


# "/v1/models/" is an unknown path, not a redirect
app = FastAPI(lifespan=lifespan, redirect_slashes=False)

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def get_backend(request: Request) -> InferenceBackend:
    return request.app.state.backend


def error_response(exc: GatewayError, headers=None) -> JSONResponse:
    body = ErrorResponse(error=exc.error, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


@app.middleware("http")
async def cors_and_error_boundary(request: Request, call_next):
    """
    Answer pre-flight requests for any path, turn unhandled exceptions into
    a 500 envelope, and attach the CORS headers to every response.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=dict(CORS_HEADERS))

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("Unhandled error", path=request.url.path, exc_info=True)
        response = error_response(InternalError("Internal server error", str(e) or "Unknown error"))

    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return error_response(exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(NotFound("Not found"), headers=exc.headers)
    if exc.status_code == 405:
        return error_response(MethodNotAllowed("Method not allowed"), headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=exc.headers,
    )


async def parse_body(http_request: Request, model: type[RequestModel]) -> RequestModel:
    """
    Parse the body as JSON whatever its Content-Type says and validate it.
    Raises BadRequest, naming the required field when that field is at fault.
    """
    try:
        payload = await http_request.json()
    except ValueError as e:
        raise BadRequest("Invalid request body", str(e) or None) from e

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = e.errors()
        for err in errors:
            loc = err.get("loc", ())
            if loc and loc[0] in REQUIRED_FIELD_ERRORS:
                raise BadRequest(REQUIRED_FIELD_ERRORS[loc[0]], err.get("msg")) from e
        message = errors[0].get("msg") if errors else None
        raise BadRequest("Invalid request body", message) from e


@app.get("/")
async def root() -> ServiceInfo:
    return service_info()


@app.get(MODELS_PATH)
async def model_list() -> ModelList:
    return list_models()


@app.post(CHAT_PATH)
async def chat_completions(
    http_request: Request,
    backend: InferenceBackend = Depends(get_backend),
) -> ChatCompletionResponse:
    """
    Translate an OpenAI chat completion request into a Workers AI run.
    The stream flag is forwarded to the model untouched.
    """
    request = await parse_body(http_request, ChatRequest)
    return await create_chat_completion(backend, request)


@app.post(EMBEDDINGS_PATH)
async def embeddings(
    http_request: Request,
    backend: InferenceBackend = Depends(get_backend),
) -> EmbeddingResponse:
    request = await parse_body(http_request, EmbeddingRequest)
    return await create_embeddings(backend, request)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
