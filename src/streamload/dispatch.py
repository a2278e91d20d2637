"""
Request dispatch with endpoint failover and coordinator-to-worker redirects.

A logical operation is described once by a RequestTemplate (method, path,
headers, buffered body). The Dispatcher materializes it against the pool's
current endpoint, rotates to the next endpoint on transport failure, and
replays it verbatim to the worker node when the coordinator answers with a
307 redirect.
"""

import logging
from dataclasses import dataclass, field
from logging import Logger
from typing import Dict, List, Optional

import httpx

from .endpoints import Endpoint, EndpointPool
from .errors import RedirectError, TransportError

TEMPORARY_REDIRECT = 307


@dataclass(frozen=True)
class RequestTemplate:
    """Endpoint-independent description of one request.

    The body is held as bytes so it can be sent more than once: to each
    endpoint tried during failover and again to the redirect target.
    """

    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[bytes] = None
    operation: str = 'request'

    def __post_init__(self):
        if self.content is not None and not isinstance(self.content, bytes):
            raise TypeError(f'Request body must be bytes, got {type(self.content).__name__}')

    def url_for(self, endpoint: Endpoint) -> str:
        return f'{endpoint.base_url}{self.path}'


class Dispatcher:
    """Sends RequestTemplates through an EndpointPool.

    Args:
        pool: Endpoints to rotate through
        http: httpx client; must not follow redirects itself
        auth: Credentials attached to every request, including redirected ones
        logger: Logger for attempt/failure/redirect messages
    """

    def __init__(
        self,
        pool: EndpointPool,
        http: httpx.Client,
        auth: Optional[httpx.Auth] = None,
        logger: Optional[Logger] = None,
    ):
        self.pool = pool
        self.http = http
        self.auth = auth
        self.logger: Logger = logger or logging.getLogger(__name__)

    def send(self, request: RequestTemplate) -> httpx.Response:
        """Execute a request, failing over on transport errors and following one redirect.

        Returns:
            The effective HTTP response (any status)

        Raises:
            TransportError: If every endpoint failed, or the redirect target was unreachable
            RedirectError: If a redirect arrived without a Location header
        """
        response = self.send_with_failover(request)
        if response.status_code == TEMPORARY_REDIRECT:
            response = self.follow_redirect(request, response)
        return response

    def send_with_failover(self, request: RequestTemplate) -> httpx.Response:
        """Try each endpoint at most once, starting at the current one.

        Any HTTP response, whatever its status, ends the loop. Only transport
        failures advance the pool.
        """
        attempts = len(self.pool)
        attempted: List[Endpoint] = []
        last_error: Optional[httpx.TransportError] = None

        for attempt in range(1, attempts + 1):
            endpoint = self.pool.current()
            attempted.append(endpoint)
            url = request.url_for(endpoint)
            self.logger.debug(f'{request.operation}: attempt {attempt}/{attempts}, connecting to {url}')

            try:
                response = self._issue(request, url)
            except httpx.TransportError as e:
                self.logger.warning(f'{request.operation}: {url} failed: {e!r}')
                last_error = e
                self.pool.advance()
                continue

            self.logger.debug(f'{request.operation}: {url} answered {response.status_code}')
            return response

        endpoints = ', '.join(str(e) for e in attempted)
        raise TransportError(
            f'{request.operation}: failed to send request to any endpoint ({endpoints}): {last_error}',
            operation=request.operation,
            attempted=attempted,
        ) from last_error

    def follow_redirect(self, request: RequestTemplate, response: httpx.Response) -> httpx.Response:
        """Replay the request, unchanged, to the node named in a 307 response."""
        location = response.headers.get('Location')
        if not location:
            raise RedirectError(
                f'{request.operation}: received {response.status_code} redirect without Location header',
                operation=request.operation,
                status_code=response.status_code,
            )

        target = str(response.url.join(location))
        self.logger.debug(f'{request.operation}: redirected to {target}')

        try:
            return self._issue(request, target)
        except httpx.TransportError as e:
            raise TransportError(
                f'{request.operation}: failed to send redirect request to {target}: {e}',
                operation=request.operation,
            ) from e

    def _issue(self, request: RequestTemplate, url: str) -> httpx.Response:
        kwargs = {'headers': request.headers, 'content': request.content, 'follow_redirects': False}
        if self.auth is not None:
            kwargs['auth'] = self.auth
        return self.http.request(request.method, url, **kwargs)
