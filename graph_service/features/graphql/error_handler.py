"""GraphQL error handling and debug-gated error masking.

Every error is logged server-side with full detail. What the client sees
depends on the error kind and on debug mode:

- User-facing errors (syntax and validation errors, errors raised as
  ``GraphQLError`` such as ``AuthorizationError``, known error codes) are
  returned as they are.
- Internal errors (any other exception raised by a resolver) are masked with
  a generic message unless debug mode is on, in which case
  ``extensions.debug`` carries the exception type, message and the file and
  line it was raised from.

Debug mode is evaluated once per request from the resolved policies.

Usage:
    result = await graphql.execute(schema, document, context_value=context)
    errors = format_errors(result.errors or [], debug=context.debug, context=context)
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any

from graphql import GraphQLError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from graph_service.features.graphql.context import RequestContext

logger = logging.getLogger(__name__)

__all__ = [
    "INTERNAL_ERROR_MESSAGE",
    "ErrorCategory",
    "format_error",
    "format_errors",
    "is_user_facing_error",
    "log_error",
]

INTERNAL_ERROR_MESSAGE = "Internal server error"


# ============================================================================
# Error Categories
# ============================================================================


class ErrorCategory:
    """Error categories for classification."""

    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DEPTH_LIMIT = "DEPTH_LIMIT_EXCEEDED"
    INTROSPECTION_DISABLED = "INTROSPECTION_DISABLED"
    BATCH_LIMIT = "BATCH_LIMIT_EXCEEDED"
    BATCHING_DISABLED = "BATCHING_DISABLED"
    INTERNAL = "INTERNAL_ERROR"


USER_FACING_CODES = frozenset(
    {
        ErrorCategory.VALIDATION,
        ErrorCategory.AUTHENTICATION,
        ErrorCategory.AUTHORIZATION,
        ErrorCategory.NOT_FOUND,
        ErrorCategory.DEPTH_LIMIT,
        ErrorCategory.INTROSPECTION_DISABLED,
        ErrorCategory.BATCH_LIMIT,
        ErrorCategory.BATCHING_DISABLED,
    }
)


# ============================================================================
# Main Error Processing
# ============================================================================


def format_errors(
    errors: Iterable[GraphQLError],
    *,
    debug: bool = False,
    context: RequestContext | None = None,
) -> list[dict[str, Any]]:
    """Process GraphQL errors before returning them to the client.

    Args:
        errors: Errors from parsing, validation or execution
        debug: Whether to expose internal error detail
        context: Request context, used for log correlation

    Returns:
        List of formatted errors safe to return to the client
    """
    formatted = []
    for error in errors:
        log_error(error, context)
        formatted.append(format_error(error, debug=debug))
    return formatted


def format_error(error: GraphQLError, *, debug: bool = False) -> dict[str, Any]:
    """Format one error, masking it when it is internal and debug is off."""
    if is_user_facing_error(error):
        return dict(error.formatted)

    if not debug:
        return _mask_internal_error(error)

    formatted: dict[str, Any] = dict(error.formatted)
    extensions = dict(formatted.get("extensions") or {})
    extensions.setdefault("code", ErrorCategory.INTERNAL)
    original = error.original_error
    if original is not None:
        extensions["debug"] = _debug_details(original)
    formatted["extensions"] = extensions
    return formatted


# ============================================================================
# Error Classification
# ============================================================================


def is_user_facing_error(error: GraphQLError) -> bool:
    """Determine if error should be shown to the user as-is.

    Errors without an original exception come from parsing or validation.
    Errors whose original exception is itself a ``GraphQLError`` were raised
    on purpose by a resolver or by the permission middleware.

    Args:
        error: GraphQL error to check

    Returns:
        True if error is safe to show to user, False if it should be masked
    """
    code = (error.extensions or {}).get("code")
    if code in USER_FACING_CODES:
        return True

    original = error.original_error
    return original is None or isinstance(original, GraphQLError)


def _mask_internal_error(error: GraphQLError) -> dict[str, Any]:
    masked: dict[str, Any] = {
        "message": INTERNAL_ERROR_MESSAGE,
        "extensions": {"code": ErrorCategory.INTERNAL},
    }
    if error.locations:
        masked["locations"] = [location.formatted for location in error.locations]
    if error.path is not None:
        masked["path"] = error.path
    return masked


def _debug_details(exc: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {
        "exception_type": type(exc).__name__,
        "exception_message": str(exc),
    }
    frames = traceback.extract_tb(exc.__traceback__)
    if frames:
        origin = frames[-1]
        details["file"] = origin.filename
        details["line"] = origin.lineno
    return details


# ============================================================================
# Error Logging
# ============================================================================


def log_error(error: GraphQLError, context: RequestContext | None = None) -> None:
    """Log error with full details for server-side debugging.

    Args:
        error: GraphQL error to log
        context: Request context with viewer and request id
    """
    log_context: dict[str, Any] = {
        "error_message": error.message,
        "error_path": error.path,
    }
    if context is not None:
        log_context["request_id"] = context.request_id
        if context.viewer.id is not None:
            log_context["viewer_id"] = context.viewer.id

    original = error.original_error
    if original is not None:
        log_context["exception_type"] = type(original).__name__
        log_context["exception_message"] = str(original)

    if is_user_facing_error(error):
        logger.info("GraphQL user-facing error", extra=log_context)
    else:
        log_context["stack_trace"] = "".join(
            traceback.format_exception(type(original), original, original.__traceback__)
        )
        logger.error("GraphQL internal error", extra=log_context)
