"""
Order lifecycle errors and safe HTTP conversions.

Every failure is contained at the component that detects it:
- Workflow turns errors into chat messages for the user
- Webhook route turns errors into HTTP status codes for the provider
Nothing here is allowed to take the process down.

SECURITY: HTTP responses carry generic messages. Details go to the log.
"""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class TopupError(Exception):
    """Base class for all order lifecycle errors."""


class InvalidSessionState(TopupError):
    """Input does not match the current conversation step (or no session exists)."""

    def __init__(self, expected: str, actual: str | None):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected step {expected}, session is at {actual or 'no session'}")


class TransportFailure(TopupError):
    """Provider call failed: network error, timeout, HTTP error or malformed body."""

    def __init__(self, message: str, ref_id: str | None = None):
        self.ref_id = ref_id
        super().__init__(message)


class DuplicateKey(TopupError):
    """An order with this ref_id is already in the ledger."""

    def __init__(self, ref_id: str):
        self.ref_id = ref_id
        super().__init__(f"order {ref_id} already exists")


class OrderNotFound(TopupError):
    """No order with this ref_id in the ledger."""

    def __init__(self, ref_id: str):
        self.ref_id = ref_id
        super().__init__(f"order {ref_id} not found")


class MalformedCallback(TopupError):
    """Provider callback payload is unusable (bad JSON or missing ref_id)."""


class CallbackRejected(TopupError):
    """Provider callback failed the verification hook."""


class HTTPErrors:
    """HTTPException factories with non-leaky messages."""

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for payloads the caller got wrong.

        OK to include specific details here since the caller caused the issue.
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """Generic 401 for failed callback verification."""
        logger.warning(f"Unauthorized callback: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Verification failed",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides from caller.

        SECURITY: Never expose stack traces, SQL errors, or internal paths.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )
