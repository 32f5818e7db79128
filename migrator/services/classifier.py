"""
Outcome classification for failed uploads.

Structured signals from the remote client (error code, HTTP status) are
checked first. Matching on the error text is kept for remote services
that only report human readable messages.
"""
from typing import Optional

from ..models import Outcome

DUPLICATE_CODES = frozenset({"DUPLICATE_PIECE", "ALREADY_EXISTS", "EMPTY_BATCH"})
TOO_LARGE_CODES = frozenset({"PAYLOAD_TOO_LARGE"})

DUPLICATE_STATUS = 409
TOO_LARGE_STATUS = 413

# message fragment -> reason shown to the operator
DUPLICATE_PATTERNS = {
    "duplicate subPieceCid": "duplicate subPieceCid",
    "Must add at least one piece": "empty batch (all duplicates)",
}
TOO_LARGE_PATTERNS = ("exceeds maximum allowed size",)


def error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


def error_code(error: BaseException) -> Optional[str]:
    """Structured error code, or None when the remote sent something else."""
    code = getattr(error, "code", None)
    return code if isinstance(code, str) else None


def duplicate_reason(error: BaseException) -> Optional[str]:
    """Why the remote side considers this upload a duplicate, if it does."""
    code = error_code(error)
    if code in DUPLICATE_CODES:
        return code.lower().replace("_", " ")
    if getattr(error, "status_code", None) == DUPLICATE_STATUS:
        return "already stored"

    message = error_message(error)
    for fragment, reason in DUPLICATE_PATTERNS.items():
        if fragment in message:
            return reason
    return None


def is_too_large(error: BaseException) -> bool:
    if error_code(error) in TOO_LARGE_CODES:
        return True
    if getattr(error, "status_code", None) == TOO_LARGE_STATUS:
        return True
    message = error_message(error)
    return any(fragment in message for fragment in TOO_LARGE_PATTERNS)


def classify(error: Optional[BaseException]) -> Outcome:
    """
    Map an upload error to its outcome.

    Priority: no error, duplicate, payload too large, anything else.
    """
    if error is None:
        return Outcome.SUCCESS
    if duplicate_reason(error) is not None:
        return Outcome.DUPLICATE
    if is_too_large(error):
        return Outcome.PERMANENT_SKIP
    return Outcome.TRANSIENT_FAILURE
