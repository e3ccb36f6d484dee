from pydantic import BaseModel, ConfigDict, Field, StrictStr
from typing import Any, Dict, Optional


class TutorRequest(BaseModel):
    """Incoming tutoring request"""
    prompt: StrictStr = Field(..., min_length=1, description="Natural-language math question")


class UpstreamCallParameters(BaseModel):
    """Immutable per-call configuration sent to the provider"""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model: str = Field(..., description="Provider model id")
    temperature: float = Field(..., ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(..., gt=0, description="Maximum output tokens")
    system_prompt: str = Field(..., description="Formatting preamble for the answer")
    top_p: Optional[float] = Field(None, ge=0.0, le=1.0, description="Nucleus sampling (Gemini)")
    top_k: Optional[int] = Field(None, gt=0, description="Top-k sampling (Gemini)")


class LLMResult(BaseModel):
    """Text produced for a prompt, by the provider or by the fallback catalog"""
    text: str
    tokens: int = Field(..., ge=0)
    model_label: str
    completion_tokens: Optional[int] = None
    is_fallback: bool = False

    model_config = ConfigDict(protected_namespaces=())

    @property
    def processing_time(self) -> str:
        if self.completion_tokens:
            # halves round up
            return f"~{int(self.completion_tokens / 10 + 0.5)}s"
        return "N/A"


class TutorResponse(BaseModel):
    """Uniform envelope returned for every outcome"""
    success: bool = Field(..., description="Discriminant between answer and error")
    resultado: Optional[str] = Field(None, description="Answer text")
    error: Optional[str] = Field(None, description="Client-safe error message")
    tokens: Optional[int] = Field(None, description="Total tokens used or estimated")
    modelo: Optional[str] = Field(None, description="Model or source that produced the answer")
    processingTime: Optional[str] = Field(None, description="Rough generation time")

    @classmethod
    def from_result(cls, result: LLMResult) -> "TutorResponse":
        return cls(
            success=True,
            resultado=result.text,
            tokens=result.tokens,
            modelo=result.model_label,
            processingTime=result.processing_time,
        )

    @classmethod
    def failure(cls, message: str) -> "TutorResponse":
        return cls(success=False, error=message)

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
