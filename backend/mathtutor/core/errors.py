"""Exception taxonomy for the tutoring endpoint.

Every error carries the HTTP status and a message that is safe to show to the
client. Upstream bodies and other details go to the server log only.
"""
from typing import Optional


GENERIC_FAILURE_MESSAGE = "Error al procesar la solicitud. Por favor, intente nuevamente."


class TutorAPIError(Exception):
    """Base class for errors translated into the response envelope"""

    status_code: int = 500
    message: str = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class PromptValidationError(TutorAPIError):
    status_code = 400
    message = "Prompt requerido y debe ser texto"


class PayloadTooLarge(PromptValidationError):
    status_code = 413
    message = "El cuerpo de la solicitud es demasiado grande"


class MethodNotAllowed(TutorAPIError):
    status_code = 405
    message = "Método no permitido. Use POST."


class ConfigurationError(TutorAPIError):
    status_code = 500
    message = "Error de configuración del servidor"


class UpstreamError(TutorAPIError):
    """Upstream provider failed in a way without a dedicated mapping"""

    status_code = 500
    message = GENERIC_FAILURE_MESSAGE


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    message = "Límite de solicitudes excedido. Intente más tarde."


class UpstreamAuthError(UpstreamError):
    status_code = 500
    message = "Error de autenticación con el servicio"


class UpstreamMalformedResponse(UpstreamError):
    status_code = 500
    message = GENERIC_FAILURE_MESSAGE


class UpstreamTimeout(UpstreamError):
    """Deadline fired before the provider answered. Never reaches the client."""

    status_code = 504
    message = "La solicitud tardó demasiado tiempo. Intente con una función más simple."
