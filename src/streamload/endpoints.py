"""Front-end endpoints and the round-robin pool the dispatcher draws from."""

import threading
from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from .errors import ConfigurationError


@dataclass(frozen=True)
class Endpoint:
    """One coordinator node (host + HTTP port)."""

    host: str
    port: Union[int, str]
    scheme: str = 'http'

    @property
    def base_url(self) -> str:
        return f'{self.scheme}://{self.host}:{self.port}'

    @classmethod
    def parse(cls, value: str) -> 'Endpoint':
        """Parse 'host:port' or 'scheme://host:port'.

        Example:
            >>> Endpoint.parse('fe1:8030').base_url
            'http://fe1:8030'
        """
        scheme = 'http'
        text = value.strip()
        if '://' in text:
            scheme, text = text.split('://', 1)
        text = text.rstrip('/')

        host, sep, port = text.rpartition(':')
        if not sep or not host or not port.isdigit():
            raise ConfigurationError(f"Invalid endpoint {value!r}. Expected 'host:port'")
        return cls(host=host, port=int(port), scheme=scheme)

    def __str__(self) -> str:
        return self.base_url


EndpointLike = Union[Endpoint, str]


def as_endpoints(values: Iterable[EndpointLike]) -> Tuple[Endpoint, ...]:
    return tuple(value if isinstance(value, Endpoint) else Endpoint.parse(value) for value in values)


class EndpointPool:
    """
    Fixed, ordered set of endpoints with a shared cursor.

    current() returns the endpoint under the cursor; advance() moves the cursor
    to the next endpoint, wrapping around. Endpoints are never removed, so a
    failing endpoint simply comes around again later in the rotation.
    """

    def __init__(self, endpoints: Iterable[EndpointLike]):
        self._endpoints = as_endpoints(endpoints)
        if not self._endpoints:
            raise ConfigurationError('At least one endpoint is required')
        self._index = 0
        self._lock = threading.Lock()

    @property
    def endpoints(self) -> Tuple[Endpoint, ...]:
        return self._endpoints

    def current(self) -> Endpoint:
        with self._lock:
            return self._endpoints[self._index]

    def advance(self) -> Endpoint:
        """Rotate to the next endpoint and return it."""
        with self._lock:
            self._index = (self._index + 1) % len(self._endpoints)
            return self._endpoints[self._index]

    def __len__(self) -> int:
        return len(self._endpoints)

    def __repr__(self) -> str:
        return f'EndpointPool({[str(e) for e in self._endpoints]}, current={self.current()})'
