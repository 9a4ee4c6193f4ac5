import hashlib


def fingerprint(text: str) -> str:
    """Exact-match cache key for a CV: sha256 of the raw UTF-8 bytes, 64 hex chars. No normalization."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
