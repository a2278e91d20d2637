"""Exception hierarchy for stream load errors.

Transport failures, protocol violations, decode failures and
application-level rejections each map to their own exception type.
Application failures keep the decoded server response on the exception
so callers can inspect counters such as rejected rows.
"""

from typing import TYPE_CHECKING, List, Optional, Type

if TYPE_CHECKING:
    from .endpoints import Endpoint
    from .models import StatusResponse


class StreamLoadError(Exception):
    """Base exception for all stream load errors."""

    pass


class ConfigurationError(StreamLoadError, ValueError):
    """Client or option configuration is invalid."""

    pass


class EncodeError(StreamLoadError):
    """Payload could not be marshaled or compressed."""

    pass


class TransportError(StreamLoadError):
    """No HTTP response could be obtained.

    Attributes:
        operation: Operation that was being dispatched
        attempted: Endpoints tried, in order
    """

    def __init__(self, message: str, operation: str = '', attempted: Optional[List['Endpoint']] = None):
        super().__init__(message)
        self.operation = operation
        self.attempted = list(attempted or [])


class RedirectError(StreamLoadError):
    """Server redirected without telling us where to go."""

    def __init__(self, message: str, operation: str = '', status_code: int = 307):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class DecodeError(StreamLoadError):
    """Response body is not a valid response document."""

    def __init__(self, message: str, operation: str = '', status_code: int = 0):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class LoadFailedError(StreamLoadError):
    """Server answered, but rejected the operation.

    Attributes:
        operation: Operation name (e.g. 'stream load', 'prepare transaction')
        status_code: HTTP status code of the effective response
        response: Decoded server response
    """

    def __init__(self, message: str, operation: str, status_code: int, response: 'StatusResponse'):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.response = response

    @property
    def server_message(self) -> str:
        return self.response.message


class StreamLoadFailedError(LoadFailedError):
    """Bulk load was rejected."""

    pass


class TransactionError(LoadFailedError):
    """A transaction begin/load/prepare/commit/rollback call was rejected."""

    pass


def failure_for(
    operation: str,
    status_code: int,
    response: 'StatusResponse',
    expected_status: str = '',
    error_class: Type[LoadFailedError] = LoadFailedError,
) -> LoadFailedError:
    """Build the application failure for a rejected response.

    Args:
        operation: Operation name used in the message
        status_code: HTTP status code of the effective response
        response: Decoded server response
        expected_status: Success sentinel, when the rejection is about the status field
        error_class: LoadFailedError subclass for the operation family

    Returns:
        An instance of error_class

    Example:
        >>> exc = failure_for('stream load', 500, LoadResponse(Message='boom'), error_class=StreamLoadFailedError)
        >>> str(exc)
        'stream load failed with status 500: boom'
    """
    if status_code != 200:
        message = f'{operation} failed with status {status_code}: {response.message}'
    else:
        message = f'{operation} failed: {response.message}'
        if expected_status:
            message = f'{message} (status {response.status!r}, expected {expected_status!r})'

    return error_class(message, operation, status_code, response)
