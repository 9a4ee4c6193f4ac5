from app.models.cv_analysis import CvAnalysis

__all__ = ["CvAnalysis"]
