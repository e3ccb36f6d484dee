import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from mathtutor.agents.tutor_agent import TutorAgent
from mathtutor.core.config import Settings, get_settings
from mathtutor.core.errors import MethodNotAllowed

logger = logging.getLogger(__name__)
router = APIRouter()

TUTOR_PATHS = ["/api/tutor", "/api/deepseek"]
ALLOWED_METHODS = "POST, OPTIONS"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ALLOWED_METHODS,
    "Access-Control-Allow-Headers": "Content-Type",
}


def get_tutor_agent(settings: Settings = Depends(get_settings)) -> TutorAgent:
    return TutorAgent(settings)


async def preflight() -> Response:
    """CORS preflight: empty 200 whatever Origin or requested headers are sent"""
    return Response(status_code=200, headers=CORS_HEADERS)


async def solve(request: Request, agent: TutorAgent = Depends(get_tutor_agent)) -> JSONResponse:
    """Answer a math prompt, from the provider or from the fallback catalog"""
    body = await request.body()
    envelope = await agent.answer(body)
    return JSONResponse(status_code=200, content=envelope.to_content(), headers=CORS_HEADERS)


async def method_not_allowed(request: Request):
    logger.info(f"Rejected {request.method} {request.url.path}")
    raise MethodNotAllowed()


for path in TUTOR_PATHS:
    router.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)
    router.add_api_route(path, solve, methods=["POST"], summary="Solve a math prompt")
    router.add_api_route(
        path,
        method_not_allowed,
        methods=["GET", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
