"""
CV analysis endpoints:
- POST /analyze-cv (alias /api/analyze-cv) — career analysis of a CV; cached per user + CV content
- GET /api/analyses — the caller's cached analyses, newest first
- GET /api/analyses/{analysis_id} — one cached analysis (ownership validated)
"""
import logging
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from app.auth import get_current_subject
from app.schemas.analysis import (
    AnalysisDetailResponse,
    AnalysisListResponse,
    AnalysisSummary,
    AnalyzeRequest,
    AnalyzeResponse,
    format_timestamp,
)
from app.services.analysis_gateway import AnalysisGateway
from app.services.errors import (
    CacheInfrastructureError,
    GenerationError,
    InvalidInputError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


def get_analysis_gateway(request: Request) -> AnalysisGateway:
    return request.app.state.analysis_gateway


# ---------- Analyze ----------


@router.post("/analyze-cv", response_model=AnalyzeResponse, response_model_exclude_none=True)
@router.post("/api/analyze-cv", response_model=AnalyzeResponse, response_model_exclude_none=True)
async def analyze_cv(
    body: AnalyzeRequest,
    authorization: str | None = Header(default=None),
    gateway: AnalysisGateway = Depends(get_analysis_gateway),
):
    """
    Analyze a CV and return career guidance.
    Same user + same CV text returns the stored analysis (fromCache=true) without calling Gemini.
    """
    try:
        return await gateway.analyze(authorization, body)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except CacheInfrastructureError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analysis cache temporarily unavailable. Please try again later.",
        ) from e
    except GenerationError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to generate analysis", "details": str(e)},
        ) from e


# ---------- History ----------


@router.get("/api/analyses", response_model=AnalysisListResponse)
async def list_analyses(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_subject),
    gateway: AnalysisGateway = Depends(get_analysis_gateway),
):
    """Cached analyses of the current user. Ownership: only rows with the caller's subject."""
    try:
        entries = await gateway.list_analyses(user_id, limit)
    except CacheInfrastructureError as e:
        logger.warning("Listing analyses failed for user %s: %s", user_id, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable") from e
    return AnalysisListResponse(
        items=[
            AnalysisSummary(
                id=e.id,
                filename=e.filename,
                cv_hash=e.cv_hash,
                created_at=format_timestamp(e.created_at),
            )
            for e in entries
        ],
    )


@router.get("/api/analyses/{analysis_id}", response_model=AnalysisDetailResponse)
async def get_analysis(
    analysis_id: str,
    user_id: str = Depends(get_current_subject),
    gateway: AnalysisGateway = Depends(get_analysis_gateway),
):
    try:
        entry = await gateway.get_analysis(user_id, analysis_id)
    except CacheInfrastructureError as e:
        logger.warning("Analysis lookup failed for user %s: %s", user_id, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable") from e
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return AnalysisDetailResponse(
        id=entry.id,
        filename=entry.filename,
        analysis=entry.analysis,
        cv_hash=entry.cv_hash,
        created_at=format_timestamp(entry.created_at),
    )
