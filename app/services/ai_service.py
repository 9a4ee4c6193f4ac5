"""
Gemini (Vertex AI) service for CV analysis.
Uses google-genai client with Vertex AI.
"""
import logging
from pathlib import Path

from app.config import get_settings

logger = logging.getLogger(__name__)

# Lazy client to avoid import/credentials errors at import time
_gemini_client = None


def _get_client():
    global _gemini_client
    if _gemini_client is not None:
        return _gemini_client
    try:
        from google import genai
        from google.oauth2 import service_account
    except ImportError as e:
        raise RuntimeError(
            "Google GenAI not installed. pip install google-genai google-auth"
        ) from e

    settings = get_settings()
    if not settings.vertex_project_id:
        raise RuntimeError("vertex_project_id is not configured")

    credentials = None
    if settings.vertex_credentials_path:
        path = Path(settings.vertex_credentials_path)
        if path.is_file():
            credentials = service_account.Credentials.from_service_account_file(
                str(path),
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )
        else:
            logger.warning("vertex_credentials_path %s not found; falling back to ADC", path)

    _gemini_client = genai.Client(
        vertexai=True,
        project=settings.vertex_project_id,
        location=settings.vertex_location,
        credentials=credentials,
    )
    return _gemini_client


# ---- CV analysis ----

CV_ANALYSIS_SYSTEM_INSTRUCTION = """You are an expert career advisor and technical recruiter with deep knowledge of the tech industry.
Your role is to analyze CVs/resumes and provide actionable, personalized career guidance.

When analyzing a CV, you should:
1. Identify the candidate's current level (junior, mid, senior, lead, etc.)
2. Highlight key strengths and technical skills
3. Identify areas for improvement or skill gaps
4. Suggest specific next steps for career advancement
5. Recommend relevant technologies or certifications to learn
6. Provide insights on market demand for their skill set
7. Suggest potential career paths or role transitions

Be specific, actionable, and encouraging in your feedback. Focus on practical advice that the candidate can implement."""

DEFAULT_CV_PROMPT_PREFIX = "Please analyze the following CV and provide detailed career guidance:\n\n"


def build_cv_prompt(cv_content: str, instruction: str = "") -> str:
    """User prompt: the caller's instruction as given, or the default framing around the CV."""
    if instruction:
        return instruction
    return DEFAULT_CV_PROMPT_PREFIX + cv_content


def generate_cv_analysis(cv_content: str, instruction: str = "") -> str:
    """
    Call Gemini for CV analysis. Returns markdown career guidance.
    Raises on API or model errors. Blocking; call from the executor.
    """
    client = _get_client()
    settings = get_settings()
    user_prompt = build_cv_prompt(cv_content, instruction)

    from google.genai.types import GenerateContentConfig

    response = client.models.generate_content(
        model=settings.gemini_model,
        contents=user_prompt,
        config=GenerateContentConfig(
            system_instruction=CV_ANALYSIS_SYSTEM_INSTRUCTION,
            temperature=0.7,
            max_output_tokens=2000,
        ),
    )

    if not response or not response.candidates:
        raise ValueError("Empty response from model")
    candidate = response.candidates[0]
    if not candidate.content or not candidate.content.parts:
        raise ValueError("No text in model response")
    return getattr(response, "text", None) or candidate.content.parts[0].text
