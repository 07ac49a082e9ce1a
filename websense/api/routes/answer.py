from __future__ import annotations

from fastapi import APIRouter, Depends

from websense.agents.orchestrator import AnswerOrchestrator
from websense.api.deps import get_orchestrator
from websense.models.schemas import AnswerRequest, AnswerResponse
from websense.services import logger as log_service

router = APIRouter(prefix="/api", tags=["answer"])


@router.post("/answer", response_model=AnswerResponse)
async def post_answer(
    request: AnswerRequest,
    orchestrator: AnswerOrchestrator = Depends(get_orchestrator),
) -> AnswerResponse:
    """Search the web, read the top pages and answer with citations."""
    log_service.log_event(
        event_type="answer_requested",
        message="Answer requested",
        query=request.query[:100],
        max_links=request.max_links,
    )
    return await orchestrator.answer(request)
