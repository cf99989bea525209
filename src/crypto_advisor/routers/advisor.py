"""Smart advisor: forwards a premium user's question to the AI endpoint."""
import logging

from fastapi import APIRouter, HTTPException, Request, Response

from crypto_advisor.api import ResultErrorMapper, UnrecognizedResponseShape
from crypto_advisor.api.decoders import decode_answer
from crypto_advisor.deps import ApiSessionDep
from crypto_advisor.routers.responses import forward_cookies, raise_for_access
from crypto_advisor.schemas import AdvisorAnswer, AskRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/advisor", tags=["advisor"])

_errors = ResultErrorMapper("Advisor answer", api_name="Advisor API")


@router.post("/ask", response_model=AdvisorAnswer)
async def ask(
    body: AskRequest, request: Request, response: Response, session: ApiSessionDep
) -> AdvisorAnswer:
    question = body.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question must not be empty")

    raise_for_access(await session.access.require_premium_access())

    result = await session.crypto.ask_advisor(question)
    if not result.success:
        logger.info("Advisor request failed: %s", result.error)
        _errors.raise_http(_errors.to_exception(result))
    try:
        answer = decode_answer(result.data)
    except UnrecognizedResponseShape as exc:
        _errors.raise_http(exc)

    forward_cookies(session, request, response)
    return answer
