import asyncio
import hashlib
import json
import os
from typing import Any

from fastapi import Body, FastAPI
from fastapi.responses import StreamingResponse

app = FastAPI()

# Config from environment
MOCK_PORT = int(os.getenv("MOCK_PORT", "8081"))
MOCK_REPLY = "Mock"
EMBEDDING_DIMS = 8


@app.get("/healthz")
async def healthz():
    """Health check endpoint."""
    return {"status": "ok"}


def fake_embedding(text: str) -> list[float]:
    """Deterministic pseudo-embedding derived from a hash of the text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [round(b / 255, 6) for b in digest[:EMBEDDING_DIMS]]


async def char_stream(text: str):
    """Workers AI style SSE: one ``{"response": ...}`` event per character."""
    for char in text:
        yield f"data: {json.dumps({'response': char})}\n\n"
        await asyncio.sleep(0)  # yield to event loop
    yield "data: [DONE]\n\n"


@app.post("/client/v4/accounts/{account_id}/ai/run/{model:path}")
async def run_model(account_id: str, model: str, params: dict[str, Any] = Body(...)):
    """
    Mock of the Workers AI run endpoint. Embedding models (ids containing
    "bge") return a vector per text; every other model replies "Mock".
    """
    if "bge" in model:
        text = params.get("text", "")
        texts = text if isinstance(text, list) else [text]
        vectors = [fake_embedding(str(t)) for t in texts]
        return {
            "result": {"shape": [len(vectors), EMBEDDING_DIMS], "data": vectors},
            "success": True,
            "errors": [],
            "messages": [],
        }

    if params.get("stream"):
        return StreamingResponse(char_stream(MOCK_REPLY), media_type="text/event-stream")

    return {
        "result": {"response": MOCK_REPLY},
        "success": True,
        "errors": [],
        "messages": [],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=MOCK_PORT)
