"""Exercise every gateway endpoint against a running instance.

Start the mock backend and the gateway first:

    MOCK_PORT=8081 python mock_backend.py
    WORKERS_AI_BASE_URL=http://localhost:8081 CLOUDFLARE_ACCOUNT_ID=demo python app.py
"""

import asyncio
import os

import httpx

GATEWAY_URL = os.getenv("GATEWAY_URL", "http://localhost:8080")


async def main() -> None:
    async with httpx.AsyncClient(base_url=GATEWAY_URL, timeout=60.0) as client:
        models = (await client.get("/v1/models")).json()
        print("Models:", [m["id"] for m in models["data"]])

        chat = await client.post(
            "/v1/chat/completions",
            json={
                "model": "@cf/meta/llama-3-8b-instruct",
                "messages": [
                    {"role": "system", "content": "You are a helpful assistant."},
                    {"role": "user", "content": "Explain quantum computing in simple terms."},
                ],
                "max_tokens": 150,
            },
        )
        print("Chat:", chat.status_code, chat.json()["choices"][0]["message"]["content"])

        embeddings = await client.post(
            "/v1/embeddings",
            json={"input": ["I love working with Workers AI!", "Second sentence"]},
        )
        for item in embeddings.json()["data"]:
            print(f"Embedding {item['index']}:", item["embedding"])


if __name__ == "__main__":
    asyncio.run(main())
