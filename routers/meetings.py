from fastapi import APIRouter, Depends, Request
from starlette import status
from starlette.concurrency import run_in_threadpool
from core.exceptions import UnexpectedException
from middleware.rate_limiter import AI_RATE_LIMIT
from schemas.meeting_schemas import ExtractTranscriptRequest, ExtractionResponse
from services.extraction_service import ExtractionError
from services.meeting_service import MeetingService
from utils.deps import db_dependency, user_dependency, rate_limit
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/meetings",
    tags=["meetings"]
)


@router.post(
    "/extract",
    status_code=status.HTTP_200_OK,
    response_model=ExtractionResponse,
    response_model_by_alias=True,
    dependencies=[Depends(rate_limit("ai", AI_RATE_LIMIT, "Too many AI requests. Please try again later."))]
)
async def extract_action_items(request: Request, body: ExtractTranscriptRequest, user: user_dependency, db: db_dependency):
    """
    Propose action items for the current user from a meeting transcript.

    The transcript is stored with its summary; the proposed items are only
    returned, for the user to confirm.
    """
    extraction_service = request.app.state.extraction_service

    try:
        analysis = await extraction_service.analyze(body.transcript, user.name)
    except ExtractionError:
        logger.error("Transcript extraction failed", extra={"user_id": user.id}, exc_info=True)
        raise UnexpectedException("Failed to analyze transcript. Please try again.")

    transcript = await run_in_threadpool(
        MeetingService.save_transcript, db, user.id, body.transcript, analysis.summary
    )

    return ExtractionResponse(
        transcript_id=transcript.id,
        summary=analysis.summary,
        action_items=analysis.action_items
    )
