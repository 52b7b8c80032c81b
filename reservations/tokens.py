import hashlib
import hmac
import secrets

# 32 random bytes -> 43 url-safe characters
TOKEN_BYTES = 32


def new_cancel_token() -> str:
    """Fresh cancellation credential; unrelated to booking id, email or time."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_cancel_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token, token_hash) -> bool:
    if not isinstance(token, str) or not token or not token_hash:
        return False
    return hmac.compare_digest(hash_cancel_token(token), token_hash)
