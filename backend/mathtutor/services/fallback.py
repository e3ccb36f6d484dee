# backend/mathtutor/services/fallback.py - Static answers used when the provider times out

import logging
import re
import unicodedata
from typing import Dict, List, Optional, Tuple

from mathtutor.models.schemas import LLMResult
from mathtutor.services.llm_service import estimate_tokens

logger = logging.getLogger(__name__)

FALLBACK_MODEL_LABEL = "Respuesta local (sin IA)"

DERIVATIVE = "derivada"
INTEGRAL = "integral"

# Checked in order; the first matching operation wins.
OPERATION_PATTERNS: List[Tuple[str, re.Pattern]] = [
    (INTEGRAL, re.compile(r"integra|antideriva|primitiva|∫")),
    (DERIVATIVE, re.compile(r"deriva|differentiat|\bf'")),
]

# A prompt must match exactly one function; composites such as sin(x^2) are not in the catalog.
FUNCTION_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("reciprocal", re.compile(r"1\s*/\s*x|x\s*\^\s*\(?\s*-\s*1")),
    ("x3", re.compile(r"x\s*(?:\^|\*\*)\s*3|x³")),
    ("x2", re.compile(r"x\s*(?:\^|\*\*)\s*2|x²")),
    ("sin", re.compile(r"\b(?:sin|sen|seno|sine)\s*(?:\(|(?:de\s+)?x\b)")),
    ("cos", re.compile(r"\b(?:cos|coseno|cosine)\s*(?:\(|(?:de\s+)?x\b)")),
    ("exp", re.compile(r"e\s*\^\s*\(?\s*x|\bexp\b|exponencial|exponential")),
    ("log", re.compile(r"\b(?:ln|log|logaritmo|logarithm)\b")),
]

CATALOG: Dict[Tuple[str, str], str] = {
    ("x2", DERIVATIVE): (
        "Problema: derivar $f(x) = x^2$ (efe de equis igual a equis al cuadrado)\n\n"
        "Paso 1: Es una función potencia $x^n$ con $n = 2$.\n"
        "Paso 2: Regla de la potencia: $\\frac{d}{dx}x^n = n x^{n-1}$ (ene por equis elevado a ene menos uno).\n"
        "Paso 3: $2 \\cdot x^{2-1} = 2x$.\n\n"
        "Resultado final: $f'(x) = 2x$ (dos equis)"
    ),
    ("x2", INTEGRAL): (
        "Problema: integrar $f(x) = x^2$ (equis al cuadrado)\n\n"
        "Paso 1: Es una función potencia $x^n$ con $n = 2$.\n"
        "Paso 2: Regla de la potencia: $\\int x^n\\,dx = \\frac{x^{n+1}}{n+1} + C$ (equis elevado a ene más uno, entre ene más uno, más C).\n"
        "Paso 3: $\\frac{x^{3}}{3} + C$.\n\n"
        "Resultado final: $\\int x^2\\,dx = \\frac{x^3}{3} + C$ (equis al cubo entre tres, más C)"
    ),
    ("x3", DERIVATIVE): (
        "Problema: derivar $f(x) = x^3$ (equis al cubo)\n\n"
        "Paso 1: Es una función potencia $x^n$ con $n = 3$.\n"
        "Paso 2: Regla de la potencia: $\\frac{d}{dx}x^n = n x^{n-1}$.\n"
        "Paso 3: $3 \\cdot x^{3-1} = 3x^2$.\n\n"
        "Resultado final: $f'(x) = 3x^2$ (tres equis al cuadrado)"
    ),
    ("x3", INTEGRAL): (
        "Problema: integrar $f(x) = x^3$ (equis al cubo)\n\n"
        "Paso 1: Es una función potencia $x^n$ con $n = 3$.\n"
        "Paso 2: Regla de la potencia: $\\int x^n\\,dx = \\frac{x^{n+1}}{n+1} + C$.\n"
        "Paso 3: $\\frac{x^{4}}{4} + C$.\n\n"
        "Resultado final: $\\int x^3\\,dx = \\frac{x^4}{4} + C$ (equis a la cuarta entre cuatro, más C)"
    ),
    ("sin", DERIVATIVE): (
        "Problema: derivar $f(x) = \\sin(x)$ (seno de equis)\n\n"
        "Paso 1: Es una función trigonométrica elemental.\n"
        "Paso 2: Derivada inmediata: $\\frac{d}{dx}\\sin(x) = \\cos(x)$.\n"
        "Paso 3: No hay regla de la cadena, el argumento es $x$.\n\n"
        "Resultado final: $f'(x) = \\cos(x)$ (coseno de equis)"
    ),
    ("sin", INTEGRAL): (
        "Problema: integrar $f(x) = \\sin(x)$ (seno de equis)\n\n"
        "Paso 1: Es una función trigonométrica elemental.\n"
        "Paso 2: La derivada de $-\\cos(x)$ es $\\sin(x)$, así que es su primitiva.\n"
        "Paso 3: Añadimos la constante de integración.\n\n"
        "Resultado final: $\\int \\sin(x)\\,dx = -\\cos(x) + C$ (menos coseno de equis, más C)"
    ),
    ("cos", DERIVATIVE): (
        "Problema: derivar $f(x) = \\cos(x)$ (coseno de equis)\n\n"
        "Paso 1: Es una función trigonométrica elemental.\n"
        "Paso 2: Derivada inmediata: $\\frac{d}{dx}\\cos(x) = -\\sin(x)$.\n"
        "Paso 3: Cuidado con el signo negativo.\n\n"
        "Resultado final: $f'(x) = -\\sin(x)$ (menos seno de equis)"
    ),
    ("cos", INTEGRAL): (
        "Problema: integrar $f(x) = \\cos(x)$ (coseno de equis)\n\n"
        "Paso 1: Es una función trigonométrica elemental.\n"
        "Paso 2: La derivada de $\\sin(x)$ es $\\cos(x)$, así que es su primitiva.\n"
        "Paso 3: Añadimos la constante de integración.\n\n"
        "Resultado final: $\\int \\cos(x)\\,dx = \\sin(x) + C$ (seno de equis, más C)"
    ),
    ("exp", DERIVATIVE): (
        "Problema: derivar $f(x) = e^x$ (e elevado a equis)\n\n"
        "Paso 1: Es la función exponencial de base $e$.\n"
        "Paso 2: Es la única función que coincide con su derivada: $\\frac{d}{dx}e^x = e^x$.\n"
        "Paso 3: No hace falta simplificar.\n\n"
        "Resultado final: $f'(x) = e^x$ (e elevado a equis)"
    ),
    ("exp", INTEGRAL): (
        "Problema: integrar $f(x) = e^x$ (e elevado a equis)\n\n"
        "Paso 1: Es la función exponencial de base $e$.\n"
        "Paso 2: Como $\\frac{d}{dx}e^x = e^x$, su primitiva es ella misma.\n"
        "Paso 3: Añadimos la constante de integración.\n\n"
        "Resultado final: $\\int e^x\\,dx = e^x + C$ (e elevado a equis, más C)"
    ),
    ("log", DERIVATIVE): (
        "Problema: derivar $f(x) = \\ln(x)$ (logaritmo neperiano de equis)\n\n"
        "Paso 1: Es la función logarítmica, definida para $x > 0$.\n"
        "Paso 2: Derivada inmediata: $\\frac{d}{dx}\\ln(x) = \\frac{1}{x}$.\n"
        "Paso 3: No hace falta simplificar.\n\n"
        "Resultado final: $f'(x) = \\frac{1}{x}$ (uno entre equis)"
    ),
    ("log", INTEGRAL): (
        "Problema: integrar $f(x) = \\ln(x)$ (logaritmo neperiano de equis)\n\n"
        "Paso 1: Integración por partes con $u = \\ln(x)$, $dv = dx$.\n"
        "Paso 2: $du = \\frac{1}{x}dx$, $v = x$, luego $\\int \\ln(x)\\,dx = x\\ln(x) - \\int 1\\,dx$.\n"
        "Paso 3: $x\\ln(x) - x + C$.\n\n"
        "Resultado final: $\\int \\ln(x)\\,dx = x\\ln(x) - x + C$ (equis por logaritmo de equis, menos equis, más C)"
    ),
    ("reciprocal", DERIVATIVE): (
        "Problema: derivar $f(x) = \\frac{1}{x}$ (uno entre equis)\n\n"
        "Paso 1: Escribimos la función como potencia: $x^{-1}$.\n"
        "Paso 2: Regla de la potencia: $-1 \\cdot x^{-2}$.\n"
        "Paso 3: $-\\frac{1}{x^2}$.\n\n"
        "Resultado final: $f'(x) = -\\frac{1}{x^2}$ (menos uno entre equis al cuadrado)"
    ),
    ("reciprocal", INTEGRAL): (
        "Problema: integrar $f(x) = \\frac{1}{x}$ (uno entre equis)\n\n"
        "Paso 1: Es el único caso en que la regla de la potencia no sirve ($n = -1$).\n"
        "Paso 2: Integral inmediata: $\\int \\frac{1}{x}\\,dx = \\ln|x| + C$.\n"
        "Paso 3: El valor absoluto cubre también $x < 0$.\n\n"
        "Resultado final: $\\int \\frac{1}{x}\\,dx = \\ln|x| + C$ (logaritmo del valor absoluto de equis, más C)"
    ),
}

GENERIC_ANSWER = (
    "No hemos podido resolver este ejercicio a tiempo.\n\n"
    "Prueba con una función más sencilla, por ejemplo: \"derivada de x^2\" o "
    "\"integral de sin(x)\"."
)


def normalize(prompt: str) -> str:
    """Lower-case and drop diacritics so 'Derivación' matches 'derivacion'"""
    decomposed = unicodedata.normalize("NFKD", prompt)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def _first_match(text: str, patterns: List[Tuple[str, re.Pattern]]) -> Optional[str]:
    for key, pattern in patterns:
        if pattern.search(text):
            return key
    return None


def _only_match(text: str, patterns: List[Tuple[str, re.Pattern]]) -> Optional[str]:
    matches = {key for key, pattern in patterns if pattern.search(text)}
    if len(matches) != 1:
        return None
    return matches.pop()


def classify(prompt: str) -> Optional[Tuple[str, str]]:
    """Return (function, operation) for a prompt, or None when either is unknown or the function is ambiguous"""
    # NFKD turns superscripts into digits, so check them before normalizing.
    text = prompt.lower() + " " + normalize(prompt)
    operation = _first_match(text, OPERATION_PATTERNS)
    function = _only_match(text, FUNCTION_PATTERNS)
    if operation is None or function is None:
        return None
    return function, operation


def fallback_answer(prompt: str) -> str:
    key = classify(prompt)
    if key is None:
        return GENERIC_ANSWER
    return CATALOG[key]


class FallbackResponder:
    """Answers from the static catalog. Never touches the network."""

    def respond(self, prompt: str) -> LLMResult:
        text = fallback_answer(prompt)
        logger.info(f"🔄 Serving fallback answer (match: {classify(prompt)})")
        return LLMResult(
            text=text,
            tokens=estimate_tokens(text),
            model_label=FALLBACK_MODEL_LABEL,
            is_fallback=True,
        )
