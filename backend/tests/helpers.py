import json
from typing import Optional

from fastapi.testclient import TestClient


def deepseek_body(content: str = "Resultado final: $f'(x) = 2x$", total_tokens: int = 42,
                  completion_tokens: Optional[int] = 30) -> dict:
    usage = {"total_tokens": total_tokens}
    if completion_tokens is not None:
        usage["completion_tokens"] = completion_tokens
    return {"choices": [{"message": {"role": "assistant", "content": content}}], "usage": usage}


def gemini_body(text: str = "Resultado final: $\\cos(x)$", total_tokens: Optional[int] = 55) -> dict:
    body = {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
    if total_tokens is not None:
        body["usageMetadata"] = {"totalTokenCount": total_tokens, "candidatesTokenCount": 20}
    return body


def post_prompt(client: TestClient, prompt, path: str = "/api/tutor"):
    return client.post(path, content=json.dumps({"prompt": prompt}),
                       headers={"Content-Type": "application/json"})
