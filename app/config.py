import enum
from pydantic_settings import BaseSettings
from functools import lru_cache


class AuthMode(str, enum.Enum):
    VERIFIED = "verified"
    # Decodes the JWT payload without checking the signature. Local development and tests only.
    UNVERIFIED_DEV = "unverified-dev"


class CacheErrorPolicy(str, enum.Enum):
    FAIL_OPEN = "fail-open"  # log and treat as cache miss
    FAIL_CLOSED = "fail-closed"  # abort the request with 503


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./app.db"

    # JWT (bearer credential issued by the identity provider)
    auth_mode: AuthMode = AuthMode.VERIFIED
    secret_key: str = ""  # required when auth_mode=verified; startup fails without it
    algorithm: str = "HS256"
    jwt_audience: str = ""  # empty = aud claim not checked
    jwt_issuer: str = ""  # empty = iss claim not checked

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Vertex AI (Gemini) for CV analysis
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""  # path to service account JSON; empty = use ADC
    gemini_model: str = "gemini-2.0-flash-exp"
    generation_timeout_seconds: float = 0  # 0 = wait for the backend indefinitely

    # Redis (optional hot cache in front of cv_analyses; empty = no Redis, DB only)
    redis_url: str = ""  # e.g. redis://localhost:6379/0
    analysis_cache_ttl_seconds: int = 86400

    # Cache lookup behaviour when the database is unavailable
    cache_error_policy: CacheErrorPolicy = CacheErrorPolicy.FAIL_OPEN

    # Coalesce concurrent misses for the same user + CV into one generation call
    single_flight_enabled: bool = True

    # Background write-back of generated analyses
    persist_queue_size: int = 100
    persist_drain_timeout_seconds: float = 10

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
