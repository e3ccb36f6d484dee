from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from mathtutor.agents.tutor_agent import TutorAgent
from mathtutor.api.routes.tutor import get_tutor_agent
from mathtutor.core.config import Settings, get_settings
from mathtutor.main import app
from mathtutor.services.llm_service import MathLLMService
from tests.helpers import deepseek_body


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        values = {
            "LLM_PROVIDER": "deepseek",
            "DEEPSEEK_API_KEY": "sk-test",
            "GEMINI_API_KEY": "gm-test",
            "UPSTREAM_TIMEOUT": 0.2,
            "FALLBACK_ON_ANY_FAILURE": False,
            "TEST_MODE_ENABLED": True,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def make_client(make_settings):
    """Build a TestClient whose upstream provider is an httpx.MockTransport"""
    def _make(handler=None, **overrides) -> TestClient:
        settings = make_settings(**overrides)
        if handler is None:
            handler = lambda request: httpx.Response(200, json=deepseek_body())
        transport = httpx.MockTransport(handler)

        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_tutor_agent] = lambda: TutorAgent(
            settings, MathLLMService(settings, transport=transport)
        )
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
