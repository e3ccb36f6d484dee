# backend/mathtutor/agents/tutor_agent.py
import logging
from typing import Optional

from mathtutor.core.config import Settings
from mathtutor.core.errors import UpstreamError, UpstreamTimeout
from mathtutor.core.guardrails import InputGuardrails
from mathtutor.models.schemas import LLMResult, TutorResponse
from mathtutor.services.fallback import FallbackResponder
from mathtutor.services.llm_service import MathLLMService

logger = logging.getLogger(__name__)

TEST_MODE_PROMPT = "test"
TEST_MODE_LABEL = "Test Mode"


class TutorAgent:
    """Main orchestrating agent for one tutoring request"""

    def __init__(
        self,
        settings: Settings,
        llm_service: Optional[MathLLMService] = None,
        fallback: Optional[FallbackResponder] = None,
    ):
        self.settings = settings
        self.guardrails = InputGuardrails(
            max_length=settings.MAX_PROMPT_LENGTH,
            max_body_bytes=settings.MAX_BODY_BYTES,
        )
        self.llm_service = llm_service or MathLLMService(settings)
        self.fallback = fallback or FallbackResponder()

    async def answer(self, body: bytes) -> TutorResponse:
        """
        Flow:
        1. Input validation and sanitization
        2. Test-mode short circuit
        3. Upstream call raced against the deadline
        4. Fallback answer when the deadline fires
        """
        prompt = self.guardrails.validate_input(body)

        logger.info(f"📝 Processing request (prompt length: {len(prompt)})")

        if self.settings.TEST_MODE_ENABLED and prompt.lower() == TEST_MODE_PROMPT:
            return self._test_mode_response()

        result = await self._generate(prompt)
        return TutorResponse.from_result(result)

    async def _generate(self, prompt: str) -> LLMResult:
        try:
            return await self.llm_service.generate(prompt)
        except UpstreamTimeout:
            logger.warning("Upstream timed out, answering from the fallback catalog")
            return self.fallback.respond(prompt)
        except UpstreamError as e:
            if not self.settings.FALLBACK_ON_ANY_FAILURE:
                raise
            logger.warning(f"Upstream failed ({type(e).__name__}), answering from the fallback catalog")
            return self.fallback.respond(prompt)

    def _test_mode_response(self) -> TutorResponse:
        configured = self.settings.api_key_configured
        logger.info(f"🧪 Test mode request (key configured: {configured})")
        return TutorResponse(
            success=True,
            resultado=(
                f"Función operativa. Proveedor: {self.settings.LLM_PROVIDER}. "
                f"API key configurada: {str(configured).lower()}"
            ),
            tokens=0,
            modelo=TEST_MODE_LABEL,
        )
