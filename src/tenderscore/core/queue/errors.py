"""
Job failure classification.

Maps exceptions raised while processing a job to stable error codes
stored on the job row.
"""

from __future__ import annotations

from tenderscore.persistence.repo import MAX_RETRIES_EXCEEDED

PARSE_ERROR = "parse-error"
ACCESS_DENIED = "access-denied"
TIMEOUT = "timeout"
UNKNOWN = "unknown"

KNOWN_CODES = frozenset({PARSE_ERROR, ACCESS_DENIED, TIMEOUT, UNKNOWN, MAX_RETRIES_EXCEEDED})

# PostgreSQL SQLSTATE prefixes/codes
_SQLSTATE_CODES = {
    "42601": PARSE_ERROR,    # syntax_error
    "22P02": PARSE_ERROR,    # invalid_text_representation
    "42501": ACCESS_DENIED,  # insufficient_privilege
    "28000": ACCESS_DENIED,  # invalid_authorization_specification
    "57014": TIMEOUT,        # query_canceled (statement_timeout)
    "55P03": TIMEOUT,        # lock_not_available
}

_MESSAGE_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (PARSE_ERROR, ("tsquery", "syntax error", "parse error", "malformed")),
    (ACCESS_DENIED, ("permission denied", "row-level security", "access denied", "not authorized")),
    (TIMEOUT, ("timeout", "timed out", "database is locked", "canceling statement")),
)

class JobError(Exception):
    """Error raised during job processing carrying an explicit error code."""
    
    def __init__(self, message: str, code: str = UNKNOWN):
        super().__init__(message)
        self.code = code

def classify_error(exc: BaseException) -> str:
    """Return a stable error code for an exception.
    
    An explicit ``code`` attribute naming a known code wins. Otherwise
    the database SQLSTATE, the exception type and finally the message
    text are inspected.
    """
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in KNOWN_CODES:
        return code
    
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in _SQLSTATE_CODES:
        return _SQLSTATE_CODES[sqlstate]
    
    if isinstance(exc, TimeoutError):
        return TIMEOUT
    if isinstance(exc, PermissionError):
        return ACCESS_DENIED
    
    message = str(exc).lower()
    for error_code, patterns in _MESSAGE_PATTERNS:
        if any(pattern in message for pattern in patterns):
            return error_code
    
    return UNKNOWN
