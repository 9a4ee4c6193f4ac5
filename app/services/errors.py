"""
Failure categories for CV analysis. Routers map each one to an HTTP status:
Unauthorized -> 401, InvalidInput -> 400, Generation -> 502,
CacheInfrastructure -> 503 (only under fail-closed). PersistenceError never reaches a caller.
"""


class AnalysisError(RuntimeError):
    """Base class for every CV analysis failure."""


class UnauthorizedError(AnalysisError):
    """The request carries no usable bearer credential."""


class MissingCredentialError(UnauthorizedError):
    """No Authorization header, or a scheme other than Bearer."""


class MalformedCredentialError(UnauthorizedError):
    """Token is not a three-segment JWT, or its payload has no string `sub`."""


class InvalidCredentialError(UnauthorizedError):
    """Token parsed but failed verification (signature, expiry, audience, issuer)."""


class InvalidInputError(AnalysisError):
    """Request body is unusable, e.g. empty CV content."""


class CacheInfrastructureError(AnalysisError):
    """The cache store failed during lookup. Distinct from a cache miss."""


class GenerationError(AnalysisError):
    """The generation backend failed or timed out."""


class PersistenceError(AnalysisError):
    """Writing a generated analysis back to the cache failed."""
