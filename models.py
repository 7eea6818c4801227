from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CHAT_MODEL = "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
DEFAULT_EMBEDDING_MODEL = "@cf/baai/bge-large-en-v1.5"


# --- Request ---
class Message(BaseModel):
    # role is usually system/user/assistant; tool roles and extra keys pass through
    model_config = ConfigDict(extra="allow")

    role: str
    content: Any


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    messages: list[Message] = Field(min_length=1)
    model: str = DEFAULT_CHAT_MODEL
    stream: bool = False

    @property
    def passthrough(self) -> dict[str, Any]:
        """Caller fields not recognized here, forwarded to the backend as-is."""
        return dict(self.model_extra or {})

    def inference_params(self) -> dict[str, Any]:
        return {
            "messages": [m.model_dump() for m in self.messages],
            "stream": self.stream,
            **self.passthrough,
        }


class EmbeddingRequest(BaseModel):
    input: Union[str, list[str]]
    model: str = DEFAULT_EMBEDDING_MODEL

    @field_validator("input")
    @classmethod
    def input_not_empty(cls, value):
        if not value:
            raise ValueError("input must not be empty")
        return value

    def inputs(self) -> list[str]:
        """Input as an ordered list; a single string becomes one element."""
        return list(self.input) if isinstance(self.input, list) else [self.input]


# --- Chat response ---
class AssistantMessage(BaseModel):
    role: str = "assistant"
    content: Any


class Choice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str = "stop"


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: list[Choice]
    usage: Usage = Field(default_factory=Usage)


# --- Embedding response ---
class Embedding(BaseModel):
    object: str = "embedding"
    embedding: Any
    index: int


class EmbeddingUsage(BaseModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class EmbeddingResponse(BaseModel):
    object: str = "list"
    data: list[Embedding]
    model: str
    usage: EmbeddingUsage = Field(default_factory=EmbeddingUsage)


# --- Models / info ---
class ModelCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    object: str = "model"
    created: int = 1677610602
    owned_by: str = "cloudflare"


class ModelList(BaseModel):
    object: str = "list"
    data: list[ModelCard]


class Endpoints(BaseModel):
    chat: str
    embeddings: str
    models: str


class ServiceInfo(BaseModel):
    message: str
    endpoints: Endpoints
    documentation: str


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
