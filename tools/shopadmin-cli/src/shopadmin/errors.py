"""
Error types and GraphQL error classification for shopadmin.
"""

import json
import sys
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import ERROR_PATTERNS


class ErrorType(str, Enum):
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    GRAPHQL = "graphql"
    UNKNOWN = "unknown"


class ErrorInfo:
    """Classified remote error: what went wrong and what to do about it."""

    def __init__(self, error_type: ErrorType, message: str, suggestion: Optional[str] = None, raw: Any = None):
        self.type = error_type
        self.message = message
        self.suggestion = suggestion
        self.raw = raw

    def __repr__(self) -> str:
        return f"ErrorInfo(type={self.type.value!r}, message={self.message!r})"


class ShopAdminError(Exception):
    """Base exception for shopadmin."""
    pass


class ConfigError(ShopAdminError):
    """Missing or invalid local configuration (shops file, API version)."""
    pass


class TransportError(ShopAdminError):
    """Network failure or a response that does not have the expected shape."""
    pass


class GraphQLRequestError(ShopAdminError):
    """The API answered with top-level GraphQL errors."""

    def __init__(self, info: ErrorInfo):
        super().__init__(info.message)
        self.info = info

    @property
    def type(self) -> ErrorType:
        return self.info.type

    @property
    def fatal(self) -> bool:
        return self.info.type in (ErrorType.AUTHENTICATION, ErrorType.RATE_LIMIT)


class UserErrorsError(ShopAdminError):
    """A mutation returned field-level userErrors."""

    def __init__(self, operation: str, user_errors: List[Dict[str, Any]]):
        super().__init__(f"{operation}: {format_user_errors(user_errors)}")


def format_user_errors(user_errors: List[Dict[str, Any]]) -> str:
    parts = []
    for err in user_errors:
        field = err.get("field")
        msg = err.get("message") or json.dumps(err)
        if field:
            path = ".".join(str(f) for f in field) if isinstance(field, list) else str(field)
            parts.append(f"{path}: {msg}")
        else:
            parts.append(msg)
    return "; ".join(parts)


def error_text(errors: Any) -> str:
    if isinstance(errors, list):
        return ", ".join(
            str(e.get("message") or e) if isinstance(e, dict) else str(e)
            for e in errors
        )
    if isinstance(errors, dict):
        return errors.get("message") or json.dumps(errors)
    return str(errors)


def classify_errors(errors: Any, shop_name: Optional[str] = None) -> ErrorInfo:
    if not errors:
        return ErrorInfo(ErrorType.UNKNOWN, "Unknown error occurred")

    text = error_text(errors)

    if ERROR_PATTERNS["access_denied"].search(text):
        suggestion = None
        if shop_name:
            suggestion = (
                f'Please update the access token using: '
                f'shopadmin shops add --name "{shop_name}" --subdomain <subdomain> --token <token>'
            )
        return ErrorInfo(
            ErrorType.AUTHENTICATION,
            "Authentication Error: The access token for this shop is invalid or expired.",
            suggestion,
            raw=errors,
        )

    if ERROR_PATTERNS["rate_limit"].search(text):
        return ErrorInfo(
            ErrorType.RATE_LIMIT,
            "Rate Limit: API rate limit exceeded.",
            "Please wait a moment and try again.",
            raw=errors,
        )

    return ErrorInfo(ErrorType.GRAPHQL, f"GraphQL Error: {text}", raw=errors)


def report_error(exc: BaseException, verbose: bool = False) -> None:
    """Print a readable diagnosis for an escalated error."""
    if isinstance(exc, GraphQLRequestError):
        print(f"\n❌ {exc.info.message}", file=sys.stderr)
        if exc.info.suggestion:
            print(f"   {exc.info.suggestion}", file=sys.stderr)
        if verbose and exc.info.raw is not None:
            print("\nFull error details:", json.dumps(exc.info.raw, indent=2, default=str), file=sys.stderr)
    elif isinstance(exc, ConfigError):
        print(f"\n❌ {exc}", file=sys.stderr)
    else:
        print(f"\n❌ Error: {exc}", file=sys.stderr)
    if verbose:
        print("\nFull error:", file=sys.stderr)
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
