"""
verity_core.validation
----------------------
Turns a raw scan payload (QR text or deep link) into a canonical token.

Accepted shape: https://<allowed host>/t/<token>[/]
with token = qr_ followed by 20-30 ASCII alphanumerics.

The scheme is case-insensitive (urlsplit folds it); the host is compared
exactly against the raw authority, so a different case, a port or userinfo
is rejected as INVALID_DOMAIN.

Pure and deterministic: no I/O, no clock, same input → same result.
"""

from __future__ import annotations
from urllib.parse import urlsplit, unquote

from .constants import ALLOWED_HOST, ALLOWED_SCHEME, PATH_PREFIX, TOKEN_PATTERN
from .errors import TokenValidationError, ValidationCode


def is_valid_token(token: str) -> bool:
    return isinstance(token, str) and TOKEN_PATTERN.fullmatch(token) is not None


def validate(raw_payload: str, allowed_host: str = ALLOWED_HOST, path_prefix: str = PATH_PREFIX) -> str:
    """
    Return the token embedded in ``raw_payload`` or raise TokenValidationError.

    Checks run in a fixed order: URL shape, scheme, exact host (subdomains
    rejected), path prefix, then token format.
    """
    if not isinstance(raw_payload, str) or not raw_payload.strip():
        raise TokenValidationError(ValidationCode.MALFORMED_URL, "empty payload")

    try:
        parts = urlsplit(raw_payload.strip())
    except ValueError as e:
        raise TokenValidationError(ValidationCode.MALFORMED_URL, str(e))

    if not parts.scheme and not parts.netloc:
        raise TokenValidationError(ValidationCode.MALFORMED_URL, "not a URL")

    if parts.scheme.lower() != ALLOWED_SCHEME:
        raise TokenValidationError(ValidationCode.INVALID_SCHEME, parts.scheme)

    # whole authority must match: no port, no userinfo, no case folding
    if parts.netloc != allowed_host:
        raise TokenValidationError(ValidationCode.INVALID_DOMAIN, parts.netloc)

    path = unquote(parts.path)
    parent = path_prefix.rstrip("/")
    if path == parent:
        # "/t" with nothing after it
        raise TokenValidationError(ValidationCode.INVALID_TOKEN_FORMAT, "no token")
    if not path.startswith(path_prefix):
        raise TokenValidationError(ValidationCode.INVALID_PATH, path)

    token = path[len(path_prefix):]
    if token.endswith("/"):
        token = token[:-1]

    if not is_valid_token(token):
        raise TokenValidationError(ValidationCode.INVALID_TOKEN_FORMAT, token)
    return token
