"""
cv_analyses persistence. All operations are sync; AnalysisCache runs them in the executor.
Ownership: every query filters on user_id; no function reads across users.
"""
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.cv_analysis import CvAnalysis


def get_analysis(db: Session, user_id: str, cv_hash: str) -> CvAnalysis | None:
    return (
        db.query(CvAnalysis)
        .filter(CvAnalysis.user_id == user_id, CvAnalysis.cv_hash == cv_hash)
        .first()
    )


def get_analysis_by_id(db: Session, user_id: str, analysis_id: str) -> CvAnalysis | None:
    return (
        db.query(CvAnalysis)
        .filter(CvAnalysis.id == analysis_id, CvAnalysis.user_id == user_id)
        .first()
    )


def insert_analysis(
    db: Session,
    user_id: str,
    cv_hash: str,
    cv_content: str,
    filename: str,
    analysis: str,
) -> CvAnalysis:
    """Insert one row and commit. Raises IntegrityError if (user_id, cv_hash) already exists."""
    row = CvAnalysis(
        user_id=user_id,
        cv_hash=cv_hash,
        cv_content=cv_content,
        filename=filename,
        analysis=analysis,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_analyses(db: Session, user_id: str, limit: int = 50) -> list[CvAnalysis]:
    """Newest first."""
    return (
        db.query(CvAnalysis)
        .filter(CvAnalysis.user_id == user_id)
        .order_by(desc(CvAnalysis.created_at))
        .limit(limit)
        .all()
    )


class AnalysisRepository:
    """Thin wrapper for dependency injection; delegates to module functions."""

    @staticmethod
    def get_analysis(db: Session, user_id: str, cv_hash: str) -> CvAnalysis | None:
        return get_analysis(db, user_id, cv_hash)

    @staticmethod
    def get_analysis_by_id(db: Session, user_id: str, analysis_id: str) -> CvAnalysis | None:
        return get_analysis_by_id(db, user_id, analysis_id)

    @staticmethod
    def insert_analysis(
        db: Session,
        user_id: str,
        cv_hash: str,
        cv_content: str,
        filename: str,
        analysis: str,
    ) -> CvAnalysis:
        return insert_analysis(db, user_id, cv_hash, cv_content, filename, analysis)

    @staticmethod
    def list_analyses(db: Session, user_id: str, limit: int = 50) -> list[CvAnalysis]:
        return list_analyses(db, user_id, limit)
