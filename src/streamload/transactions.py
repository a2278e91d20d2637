"""Transactions client for the stream load API.

A transaction is identified by a caller-chosen label. The expected sequence is
begin -> load (one or more) -> prepare -> commit, with rollback available
before commit. Ordering is enforced by the server, not here: an out-of-order
call comes back as a TransactionError carrying the server's reply.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Union

from . import models
from .dispatch import RequestTemplate
from .errors import ConfigurationError, TransactionError
from .types import LoadOptions

if TYPE_CHECKING:
    from .client import Client

LOAD_OK = 'OK'
PREPARE_OK = 'OK'
COMMIT_OK = 'OK'


class TransactionsClient:
    """Client for transaction operations.

    Args:
        client: Parent Client instance

    Example:
        >>> txn = client.transactions
        >>> txn.begin('orders-2024-06-01', 'orders')
        >>> txn.load('orders-2024-06-01', 'orders', csv_bytes, LoadOptions(format='csv'))
        >>> txn.prepare('orders-2024-06-01')
        >>> txn.commit('orders-2024-06-01')
    """

    def __init__(self, client: 'Client'):
        self._client = client

    def begin(self, label: str, table: Union[str, Sequence[str]]) -> models.TransactionBeginResponse:
        """Begin a transaction.

        Args:
            label: Caller-chosen transaction label
            table: Target table; for a sequence the first table is used

        Returns:
            TransactionBeginResponse with the server-assigned TxnId

        Raises:
            ConfigurationError: If table is an empty sequence
            TransactionError: If the server answered with a non-200 status
        """
        if not isinstance(table, str):
            if not table:
                raise ConfigurationError('at least one table is required')
            table = table[0]
        response, decoded = self._control('begin', label, {'table': table})
        return self._client.check(response, decoded, 'begin transaction', error_class=TransactionError)

    def load(
        self, label: str, table: str, data: Any, options: Optional[LoadOptions] = None
    ) -> models.LoadResponse:
        """Load a payload into an open transaction.

        Args:
            label: Label passed to begin()
            table: Target table
            data: bytes, str, or a readable stream
            options: Load options; options.label is ignored in favour of ``label``

        Returns:
            LoadResponse for this load

        Raises:
            TransactionError: If the HTTP status is not 200 or the status is not 'OK'
        """
        client = self._client
        options = options or LoadOptions()
        body = client.prepare_body(data, options, 'transaction load')

        headers: Dict[str, str] = dict(client.default_headers)
        headers['Expect'] = '100-continue'
        headers.update(options.to_headers())
        headers.update({'label': label, 'db': client.database, 'table': table})

        request = RequestTemplate('PUT', '/api/transaction/load', headers, body, operation='transaction load')
        response = client._send(request)
        client.logger.debug(f'transaction load: response body = {response.text}')

        decoded = client.decode(response, models.LoadResponse, 'transaction load')
        return client.check(response, decoded, 'transaction load', LOAD_OK, TransactionError)

    def prepare(self, label: str) -> models.TransactionPrepareResponse:
        """Pre-commit a transaction after its loads.

        Raises:
            TransactionError: If the HTTP status is not 200 or the status is not 'OK'
        """
        response, decoded = self._control('prepare', label)
        return self._client.check(response, decoded, 'prepare transaction', PREPARE_OK, TransactionError)

    def commit(self, label: str) -> models.TransactionCommitResponse:
        """Commit a prepared transaction.

        Only the HTTP status is enforced. Servers report different status
        strings for transactions that already reached a terminal state, so a
        status other than 'OK' is logged and the reply returned.

        Raises:
            TransactionError: If the HTTP status is not 200
        """
        response, decoded = self._control('commit', label)
        self._client.logger.debug(f'commit transaction: response body = {response.text}')

        decoded = self._client.check(response, decoded, 'commit transaction', error_class=TransactionError)
        if decoded.status != COMMIT_OK:
            self._client.logger.warning(
                f'commit transaction {label!r}: server reported status {decoded.status!r}: {decoded.message}'
            )
        return decoded

    def rollback(self, label: str) -> models.TransactionRollbackResponse:
        """Abort a transaction that has not been committed.

        Raises:
            TransactionError: If the HTTP status is not 200
        """
        response, decoded = self._control('rollback', label)
        return self._client.check(response, decoded, 'rollback transaction', error_class=TransactionError)

    def _control(self, action: str, label: str, extra: Optional[Dict[str, str]] = None):
        client = self._client
        operation = f'{action} transaction'
        headers = {
            'Content-Type': 'application/json',
            'Expect': '100-continue',
            'label': label,
            'db': client.database,
        }
        headers.update(extra or {})
        client.logger.debug(f'{operation}: headers = {headers}')

        request = RequestTemplate('POST', f'/api/transaction/{action}', headers, operation=operation)
        response = client._send(request)
        return response, client.decode(response, CONTROL_RESPONSES[action], operation)


CONTROL_RESPONSES = {
    'begin': models.TransactionBeginResponse,
    'prepare': models.TransactionPrepareResponse,
    'commit': models.TransactionCommitResponse,
    'rollback': models.TransactionRollbackResponse,
}
