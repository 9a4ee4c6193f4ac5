from datetime import datetime, timezone
from pydantic import BaseModel, Field


def format_timestamp(value: datetime) -> str:
    """RFC 3339 string; naive values (SQLite drops tzinfo) are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


# ---- Analyze ----

class AnalyzeRequest(BaseModel):
    cv_content: str | None = Field("", alias="cvContent", description="Raw CV text")
    prompt: str | None = Field("", description="Optional instruction; empty = default career guidance prompt")

    class Config:
        populate_by_name = True


class AnalyzeResponse(BaseModel):
    analysis: str
    from_cache: bool = Field(False, alias="fromCache")
    cached_at: str | None = Field(None, alias="cachedAt")
    filename: str | None = None

    class Config:
        populate_by_name = True


# ---- Cache entries ----

class CachedAnalysis(BaseModel):
    """Cache entry as handed out by AnalysisCache (DB row or Redis copy)."""
    id: str
    user_id: str
    cv_hash: str
    filename: str
    analysis: str
    created_at: datetime

    class Config:
        from_attributes = True


# ---- Listing (GET) ----

class AnalysisSummary(BaseModel):
    id: str
    filename: str
    cv_hash: str = Field(..., alias="cvHash")
    created_at: str = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True


class AnalysisListResponse(BaseModel):
    items: list[AnalysisSummary]


class AnalysisDetailResponse(BaseModel):
    id: str
    filename: str
    analysis: str
    cv_hash: str = Field(..., alias="cvHash")
    created_at: str = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True
