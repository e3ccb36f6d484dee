import asyncio
import json

import httpx
import pytest

from mathtutor.services.fallback import CATALOG, DERIVATIVE, FALLBACK_MODEL_LABEL, INTEGRAL
from tests.helpers import deepseek_body, post_prompt


def test_post_returns_model_answer(make_client):
    response = post_prompt(make_client(), "derivada de x^2")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "resultado": "Resultado final: $f'(x) = 2x$",
        "tokens": 42,
        "modelo": "DeepSeek V3",
        "processingTime": "~3s",
    }
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_legacy_path_is_served(make_client):
    response = post_prompt(make_client(), "derivada de x^2", path="/api/deepseek")
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_sanitized_prompt_is_sent_upstream(make_client):
    seen = []

    def handler(request: httpx.Request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=deepseek_body())

    post_prompt(make_client(handler), "  deriva\x00da\n  de   x^2 ")
    assert seen[0]["messages"][1] == {"role": "user", "content": "derivada de x^2"}


def test_options_preflight(make_client):
    response = make_client().options("/api/tutor")

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_browser_preflight_gets_empty_body(make_client):
    response = make_client().options("/api/tutor", headers={
        "Origin": "https://pau.example.com",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "Content-Type, X-Requested-With",
    })

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "TRACE", "FOO"])
def test_other_methods_are_rejected(make_client, method):
    response = make_client().request(method, "/api/tutor")

    assert response.status_code == 405
    assert response.json() == {"success": False, "error": "Método no permitido. Use POST."}
    assert response.headers["Allow"] == "POST, OPTIONS"
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_head_is_rejected(make_client):
    response = make_client().head("/api/tutor")

    assert response.status_code == 405
    assert response.headers["Allow"] == "POST, OPTIONS"


def test_unknown_path_keeps_default_404(make_client):
    response = make_client().get("/api/nope")
    assert response.status_code == 404


@pytest.mark.parametrize("prompt", ["", 42, None, ["derivada"], {"text": "x"}])
def test_bad_prompt_is_rejected(make_client, prompt):
    response = post_prompt(make_client(), prompt)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]


def test_invalid_json_is_rejected(make_client):
    response = make_client().post("/api/tutor", content=b"{prompt:",
                                  headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_oversized_body_is_rejected(make_client):
    response = post_prompt(make_client(MAX_BODY_BYTES=64), "x" * 200)
    assert response.status_code == 413
    assert response.json()["success"] is False


def test_timeout_serves_fallback(make_client):
    async def handler(request: httpx.Request):
        await asyncio.sleep(1)
        return httpx.Response(200, json=deepseek_body())

    response = post_prompt(make_client(handler, UPSTREAM_TIMEOUT=0.05), "integral of sin(x)")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["modelo"] == FALLBACK_MODEL_LABEL
    assert body["resultado"] == CATALOG[("sin", INTEGRAL)]
    assert "error" not in body


def test_timeout_with_unknown_prompt_still_succeeds(make_client):
    def handler(request: httpx.Request):
        raise httpx.ReadTimeout("slow", request=request)

    response = post_prompt(make_client(handler), "resuelve 2x = 4")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["modelo"] == FALLBACK_MODEL_LABEL


@pytest.mark.parametrize("prompt", ["derivada de x^2", "test", "hola"])
def test_missing_key_is_configuration_error(make_client, prompt):
    response = post_prompt(make_client(DEEPSEEK_API_KEY="", TEST_MODE_ENABLED=False), prompt)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Error de configuración del servidor"}
    assert "DEEPSEEK" not in response.text


@pytest.mark.parametrize("key,expected", [("sk-test", "true"), ("", "false")])
def test_test_mode(make_client, key, expected):
    calls = []
    handler = lambda request: calls.append(request) or httpx.Response(200, json=deepseek_body())

    response = post_prompt(make_client(handler, DEEPSEEK_API_KEY=key), "test")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["modelo"] == "Test Mode"
    assert f"API key configurada: {expected}" in body["resultado"]
    assert calls == []


def test_rate_limit_is_passed_through(make_client):
    handler = lambda request: httpx.Response(429, json={"error": "too many"})
    response = post_prompt(make_client(handler), "derivada de x^2")

    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": "Límite de solicitudes excedido. Intente más tarde.",
    }


@pytest.mark.parametrize("status,client_status", [(401, 500), (403, 403)])
def test_auth_errors_are_generic(make_client, status, client_status):
    handler = lambda request: httpx.Response(status, text="invalid api key sk-test")
    response = post_prompt(make_client(handler), "derivada de x^2")

    assert response.status_code == client_status
    assert response.json()["error"] == "Error de autenticación con el servicio"
    assert "sk-test" not in response.text


def test_malformed_upstream_is_generic_failure(make_client):
    handler = lambda request: httpx.Response(200, json={"unexpected": True})
    response = post_prompt(make_client(handler), "derivada de x^2")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Error al procesar la solicitud. Por favor, intente nuevamente.",
    }


def test_upstream_failure_does_not_fall_back_by_default(make_client):
    handler = lambda request: httpx.Response(503, text="unavailable")
    response = post_prompt(make_client(handler), "derivative of x^2")
    assert response.status_code == 500
    assert response.json()["success"] is False


def test_fallback_on_any_failure(make_client):
    handler = lambda request: httpx.Response(503, text="unavailable")
    response = post_prompt(make_client(handler, FALLBACK_ON_ANY_FAILURE=True), "derivative of x^2")

    assert response.status_code == 200
    body = response.json()
    assert body["modelo"] == FALLBACK_MODEL_LABEL
    assert body["resultado"] == CATALOG[("x2", DERIVATIVE)]


def test_fallback_on_any_failure_keeps_configuration_errors(make_client):
    response = post_prompt(
        make_client(DEEPSEEK_API_KEY="", FALLBACK_ON_ANY_FAILURE=True), "derivative of x^2"
    )
    assert response.status_code == 500
    assert response.json()["error"] == "Error de configuración del servidor"
