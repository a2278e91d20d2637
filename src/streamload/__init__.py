"""Stream load - HTTP bulk loading client with endpoint failover and transactions.

Example:
    >>> from streamload import Client, LoadOptions
    >>> client = Client(['fe1:8030', 'fe2:8030'], 'analytics', 'root')
    >>> client.load('users', b'1,Alice,25\\n', LoadOptions(format='csv', columns='id,name,age'))
"""

from .client import Client
from .columns import extract_columns
from .compression import compress
from .dispatch import Dispatcher, RequestTemplate
from .endpoints import Endpoint, EndpointPool
from .errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    LoadFailedError,
    RedirectError,
    StreamLoadError,
    StreamLoadFailedError,
    TransactionError,
    TransportError,
)
from .models import (
    LoadResponse,
    TransactionBeginResponse,
    TransactionCommitResponse,
    TransactionPrepareResponse,
    TransactionRollbackResponse,
)
from .transactions import TransactionsClient
from .types import CompressionType, DataFormat, LoadOptions

__all__ = [
    # Core clients
    'Client',
    'TransactionsClient',
    'Dispatcher',
    'RequestTemplate',
    'Endpoint',
    'EndpointPool',
    # Options
    'LoadOptions',
    'CompressionType',
    'DataFormat',
    # Responses
    'LoadResponse',
    'TransactionBeginResponse',
    'TransactionPrepareResponse',
    'TransactionCommitResponse',
    'TransactionRollbackResponse',
    # Helpers
    'compress',
    'extract_columns',
    # Exceptions
    'StreamLoadError',
    'ConfigurationError',
    'EncodeError',
    'TransportError',
    'RedirectError',
    'DecodeError',
    'LoadFailedError',
    'StreamLoadFailedError',
    'TransactionError',
]
