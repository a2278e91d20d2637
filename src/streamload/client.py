"""Stream load client.

This module provides the Client class, which loads CSV or JSON payloads into
a table over the stream load HTTP API, and gives access to the transaction
API through ``client.transactions``.
"""

import logging
import os
from dataclasses import replace
from logging import Logger
from typing import Any, Dict, Iterable, Optional, Sequence, Type, TypeVar, Union

import httpx
import pyarrow as pa
from pydantic import ValidationError

from .columns import columns_for, record_rows
from .compression import compress
from .dispatch import Dispatcher, RequestTemplate
from .endpoints import EndpointLike, EndpointPool
from .errors import ConfigurationError, DecodeError, LoadFailedError, StreamLoadFailedError, failure_for
from .models import LoadResponse, StatusResponse
from .records import arrow_columns, encode_arrow_csv, encode_arrow_json, encode_csv, encode_json, read_payload
from .types import CompressionType, DataFormat, LoadOptions

DEFAULT_TIMEOUT = 30 * 60.0  # seconds
LOAD_SUCCESS = 'Success'

TResponse = TypeVar('TResponse', bound=StatusResponse)


class Client:
    """HTTP client for the stream load API.

    Args:
        endpoints: Front-end endpoints, as Endpoint objects or 'host:port' strings
        database: Target database
        username: User for HTTP basic auth
        password: Password for HTTP basic auth
        http_client: Optional pre-configured httpx.Client (custom transport, proxies, TLS)
        timeout: Transport timeout in seconds when no http_client is given
        default_headers: Extra headers sent with every load
        logger: Logger for request tracing (default: module logger)

    Raises:
        ConfigurationError: If no endpoints are given or one is malformed

    Example:
        >>> client = Client(['fe1:8030', 'fe2:8030'], 'analytics', 'root')
        >>> resp = client.load('users', b'1,Alice,25', LoadOptions(format='csv', columns='id,name,age'))
        >>> print(resp.number_loaded_rows)
        >>>
        >>> client.transactions.begin('batch-42', 'users')
    """

    def __init__(
        self,
        endpoints: Iterable[EndpointLike],
        database: str,
        username: str,
        password: str = '',
        *,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
        default_headers: Optional[Dict[str, str]] = None,
        logger: Optional[Logger] = None,
    ):
        if not database:
            raise ConfigurationError('database is required')

        self.pool = EndpointPool(endpoints)
        self.database = database
        self.username = username
        self.default_headers: Dict[str, str] = dict(default_headers or {})
        self.logger: Logger = logger or logging.getLogger(__name__)

        self._owns_http = http_client is None
        http = http_client or httpx.Client(timeout=timeout, follow_redirects=False)
        self._dispatcher = Dispatcher(self.pool, http, auth=httpx.BasicAuth(username, password), logger=self.logger)

        self.logger.info(f'Initialized stream load client for {self.database} on {len(self.pool)} endpoint(s)')

    @classmethod
    def from_env(cls, **kwargs: Any) -> 'Client':
        """Build a client from the environment.

        Explicit keyword arguments win over environment variables:
        STREAMLOAD_ENDPOINTS (comma-separated 'host:port' list),
        STREAMLOAD_DATABASE, STREAMLOAD_USER, STREAMLOAD_PASSWORD.
        """
        if 'endpoints' not in kwargs:
            raw = os.getenv('STREAMLOAD_ENDPOINTS', '')
            kwargs['endpoints'] = [part for part in (p.strip() for p in raw.split(',')) if part]
        kwargs.setdefault('database', os.getenv('STREAMLOAD_DATABASE', ''))
        kwargs.setdefault('username', os.getenv('STREAMLOAD_USER', 'root'))
        kwargs.setdefault('password', os.getenv('STREAMLOAD_PASSWORD', ''))
        return cls(**kwargs)

    @property
    def transactions(self):
        """Access the transactions client.

        Returns:
            TransactionsClient for begin/load/prepare/commit/rollback
        """
        from .transactions import TransactionsClient

        return TransactionsClient(self)

    @property
    def http_client(self) -> httpx.Client:
        return self._dispatcher.http

    def set_http_client(self, http_client: httpx.Client) -> None:
        """Replace the transport. Do this before sharing the client across threads."""
        if self._owns_http:
            self._dispatcher.http.close()
        self._dispatcher.http = http_client
        self._owns_http = False

    def set_default_header(self, key: str, value: str) -> None:
        self.default_headers[key] = value

    def load(self, table: str, data: Any, options: Optional[LoadOptions] = None) -> LoadResponse:
        """Load a payload into a table.

        The payload is read fully into memory (and compressed, if requested)
        before the first attempt so it can be re-sent on failover and redirect.

        Args:
            table: Target table
            data: bytes, str, or a readable binary/text stream
            options: Load options (format, columns, compression, label, ...)

        Returns:
            LoadResponse with row counters and timings

        Raises:
            StreamLoadFailedError: If the server rejected the load; ``.response`` holds the decoded reply
            TransportError: If no endpoint could be reached
            RedirectError: If a redirect had no Location header
            DecodeError: If the reply was not a valid response document

        Example:
            >>> resp = client.load('users', open('users.json', 'rb'), LoadOptions(
            ...     format=DataFormat.JSON, strip_outer_array=True, compression=CompressionType.GZIP))
        """
        options = options or LoadOptions()
        headers = self._load_headers(options)
        body = self.prepare_body(data, options, 'stream load')

        request = RequestTemplate(
            'PUT', f'/api/{self.database}/{table}/_stream_load', headers, body, operation='stream load'
        )
        response = self._send(request)
        decoded = self.decode(response, LoadResponse, 'stream load')
        return self.check(response, decoded, 'stream load', LOAD_SUCCESS, StreamLoadFailedError)

    def load_records_csv(self, table: str, records: Sequence[Any], options: Optional[LoadOptions] = None) -> LoadResponse:
        """Load typed records (dataclasses, pydantic models or dicts) as CSV.

        Columns come from the record type when options.columns is empty; the
        column separator defaults to ','.
        """
        options = replace(options or LoadOptions(), format=DataFormat.CSV)
        if not options.columns:
            options.columns = ','.join(columns_for(records, 'csv'))
        if not options.column_separator:
            options.column_separator = ','

        body = encode_csv(record_rows(records, 'csv'), options.column_separator, options.row_delimiter)
        return self.load(table, body, options)

    def load_records_json(self, table: str, records: Sequence[Any], options: Optional[LoadOptions] = None) -> LoadResponse:
        """Load typed records (dataclasses, pydantic models or dicts) as a JSON array.

        Columns come from the record type when options.columns is empty.
        strip_outer_array is always enabled and compression defaults to ZSTD.
        """
        options = replace(options or LoadOptions(), format=DataFormat.JSON, strip_outer_array=True)
        if not options.columns:
            options.columns = ','.join(columns_for(records, 'json'))
        if not options.compressed:
            options.compression = CompressionType.ZSTD

        body = encode_json(record_rows(records, 'json'))
        return self.load(table, body, options)

    def load_arrow(
        self, table: str, data: Union[pa.Table, pa.RecordBatch], options: Optional[LoadOptions] = None
    ) -> LoadResponse:
        """Load an Arrow table or record batch.

        Columns come from the Arrow schema. Format is CSV unless options ask for JSON.
        """
        options = replace(options or LoadOptions())
        if not options.columns:
            options.columns = ','.join(arrow_columns(data))

        if options.format is DataFormat.JSON:
            options.strip_outer_array = True
            body = encode_arrow_json(data)
        else:
            options.format = DataFormat.CSV
            options.column_separator = options.column_separator or ','
            body = encode_arrow_csv(data, options.column_separator, options.row_delimiter)
        return self.load(table, body, options)

    def prepare_body(self, data: Any, options: LoadOptions, operation: str) -> bytes:
        """Buffer and optionally compress a payload."""
        raw = read_payload(data)
        body = compress(raw, options.compression)
        if options.compressed:
            self.logger.debug(f'{operation}: compressed {len(raw)} -> {len(body)} bytes with {options.compression.value}')
        else:
            self.logger.debug(f'{operation}: payload size {len(body)} bytes')
        return body

    def decode(self, response: httpx.Response, model: Type[TResponse], operation: str) -> TResponse:
        """Decode a response body into the given response record."""
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(
                f'{operation}: failed to parse response (HTTP {response.status_code}): {e}',
                operation=operation,
                status_code=response.status_code,
            ) from e

    def check(
        self,
        response: httpx.Response,
        decoded: TResponse,
        operation: str,
        expected_status: Optional[str] = None,
        error_class: Type[LoadFailedError] = LoadFailedError,
    ) -> TResponse:
        """Raise error_class carrying the decoded reply if the call was rejected."""
        error: Optional[LoadFailedError] = None
        if response.status_code != httpx.codes.OK:
            error = failure_for(operation, response.status_code, decoded, error_class=error_class)
        elif expected_status is not None and decoded.status != expected_status:
            error = failure_for(operation, response.status_code, decoded, expected_status, error_class)

        if error is not None:
            self.logger.warning(str(error))
            raise error
        return decoded

    def _send(self, request: RequestTemplate) -> httpx.Response:
        """Dispatch a request through the endpoint pool (failover + redirect)."""
        return self._dispatcher.send(request)

    def _load_headers(self, options: LoadOptions) -> Dict[str, str]:
        headers = dict(self.default_headers)
        headers['Expect'] = '100-continue'
        headers.update(options.to_headers())
        return headers

    def close(self):
        """Close the HTTP client if this client created it."""
        if self._owns_http:
            self._dispatcher.http.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
