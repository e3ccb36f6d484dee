# backend/mathtutor/core/guardrails.py - Input validation before any upstream call

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from mathtutor.core.errors import PayloadTooLarge, PromptValidationError
from mathtutor.models.schemas import TutorRequest

logger = logging.getLogger(__name__)

CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
WHITESPACE_RUNS = re.compile(r"\s+")


def sanitize_prompt(prompt: str, max_length: int = 500) -> str:
    """Strip control characters, collapse whitespace and cap the length.

    The result never starts or ends with whitespace, so applying the function
    twice gives the same string.
    """
    sanitized = CONTROL_CHARS.sub("", prompt)
    sanitized = WHITESPACE_RUNS.sub(" ", sanitized).strip()
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip()
    return sanitized


class InputGuardrails:
    """Validates the raw request body and returns a prompt ready for dispatch"""

    def __init__(self, max_length: int = 500, max_body_bytes: int = 1024 * 1024):
        self.max_length = max_length
        self.max_body_bytes = max_body_bytes

    def parse_body(self, body: bytes) -> TutorRequest:
        """Decode the JSON body into a TutorRequest"""
        if len(body) > self.max_body_bytes:
            logger.warning(f"Rejected body of {len(body)} bytes")
            raise PayloadTooLarge()

        try:
            payload: Any = json.loads(body) if body else None
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise PromptValidationError("El cuerpo de la solicitud debe ser JSON válido")

        if not isinstance(payload, dict):
            raise PromptValidationError()

        try:
            return TutorRequest.model_validate(payload)
        except ValidationError:
            raise PromptValidationError()

    def validate_prompt(self, prompt: str) -> str:
        sanitized = sanitize_prompt(prompt, self.max_length)

        if not sanitized:
            raise PromptValidationError("El prompt no puede estar vacío")

        if len(sanitized) > self.max_length:
            raise PromptValidationError(
                f"El prompt es demasiado largo (máximo {self.max_length} caracteres)"
            )

        return sanitized

    def validate_input(self, body: bytes) -> str:
        """Full input pipeline: body -> request model -> sanitized prompt"""
        request = self.parse_body(body)
        return self.validate_prompt(request.prompt)
