"""Integration tests for request dispatch: failover and redirect replay."""

import logging

import httpx
import pytest
import respx
from httpx import Response

from streamload.dispatch import Dispatcher, RequestTemplate
from streamload.endpoints import Endpoint, EndpointPool
from streamload.errors import RedirectError, TransportError

PATH = '/api/test_db/users/_stream_load'
BODY = b'1,Alice,25\n2,Bob,30\n'
HEADERS = {'Expect': '100-continue', 'format': 'csv', 'columns': 'id,name,age', 'label': 'load-1'}


def make_dispatcher(*hosts, auth=None):
    pool = EndpointPool([Endpoint(host, 8030) for host in hosts])
    http = httpx.Client(follow_redirects=False)
    return Dispatcher(pool, http, auth=auth)


def make_request(**overrides):
    values = {'method': 'PUT', 'path': PATH, 'headers': dict(HEADERS), 'content': BODY, 'operation': 'stream load'}
    values.update(overrides)
    return RequestTemplate(**values)


@pytest.mark.integration
class TestRequestTemplate:
    """Test RequestTemplate construction"""

    def test_url_for(self):
        assert make_request().url_for(Endpoint('fe1', 8030)) == f'http://fe1:8030{PATH}'

    def test_body_must_be_bytes(self):
        with pytest.raises(TypeError, match='must be bytes'):
            make_request(content='not bytes')


@pytest.mark.integration
class TestFailover:
    """Test endpoint rotation on transport failures"""

    @respx.mock
    def test_first_endpoint_answers(self):
        """Test a healthy first endpoint is the only one contacted."""
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(200, json={'Status': 'Success'}))
        fe2 = respx.put(f'http://fe2:8030{PATH}')

        dispatcher = make_dispatcher('fe1', 'fe2')
        response = dispatcher.send(make_request())

        assert response.status_code == 200
        assert fe1.call_count == 1
        assert fe2.call_count == 0
        assert dispatcher.pool.current().host == 'fe1'

    @respx.mock
    def test_fails_over_to_next_endpoint(self):
        """Test a connect failure moves the request and the cursor to the next endpoint."""
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(side_effect=httpx.ConnectError)
        fe2 = respx.put(f'http://fe2:8030{PATH}').mock(return_value=Response(200, json={'Status': 'Success'}))

        dispatcher = make_dispatcher('fe1', 'fe2')
        response = dispatcher.send(make_request())

        assert response.status_code == 200
        assert fe1.call_count == 1
        assert fe2.call_count == 1
        assert fe2.calls.last.request.content == BODY
        assert dispatcher.pool.current().host == 'fe2'

    @respx.mock
    def test_all_endpoints_fail(self):
        """Test every endpoint is tried once before giving up."""
        routes = [
            respx.put(f'http://fe1:8030{PATH}').mock(side_effect=httpx.ConnectError),
            respx.put(f'http://fe2:8030{PATH}').mock(side_effect=httpx.ConnectError),
            respx.put(f'http://fe3:8030{PATH}').mock(side_effect=httpx.ConnectTimeout),
        ]

        dispatcher = make_dispatcher('fe1', 'fe2', 'fe3')

        with pytest.raises(TransportError) as exc_info:
            dispatcher.send(make_request())

        assert [route.call_count for route in routes] == [1, 1, 1]
        assert [e.host for e in exc_info.value.attempted] == ['fe1', 'fe2', 'fe3']
        assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)
        assert exc_info.value.operation == 'stream load'

    @respx.mock
    def test_rotation_starts_at_current_endpoint(self):
        """Test rotation begins at the cursor and wraps around."""
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(side_effect=httpx.ConnectError)
        fe2 = respx.put(f'http://fe2:8030{PATH}').mock(side_effect=httpx.ConnectError)
        fe3 = respx.put(f'http://fe3:8030{PATH}').mock(side_effect=httpx.ConnectError)

        dispatcher = make_dispatcher('fe1', 'fe2', 'fe3')
        dispatcher.pool.advance()

        with pytest.raises(TransportError) as exc_info:
            dispatcher.send(make_request())

        assert [e.host for e in exc_info.value.attempted] == ['fe2', 'fe3', 'fe1']
        assert fe1.call_count == fe2.call_count == fe3.call_count == 1

    @respx.mock
    def test_single_endpoint_attempted_once(self):
        """Test a pool of one makes exactly one attempt."""
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(side_effect=httpx.ConnectError)

        dispatcher = make_dispatcher('fe1')

        with pytest.raises(TransportError):
            dispatcher.send(make_request())

        assert fe1.call_count == 1

    @respx.mock
    def test_http_error_status_does_not_fail_over(self):
        """Test an HTTP 500 is a response, not a transport failure."""
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(500, json={'Status': 'Fail'}))
        fe2 = respx.put(f'http://fe2:8030{PATH}')

        dispatcher = make_dispatcher('fe1', 'fe2')
        response = dispatcher.send(make_request())

        assert response.status_code == 500
        assert fe1.call_count == 1
        assert fe2.call_count == 0
        assert dispatcher.pool.current().host == 'fe1'

    @respx.mock
    def test_failures_are_logged(self, caplog):
        respx.put(f'http://fe1:8030{PATH}').mock(side_effect=httpx.ConnectError)
        respx.put(f'http://fe2:8030{PATH}').mock(return_value=Response(200, json={}))

        with caplog.at_level(logging.DEBUG, logger='streamload.dispatch'):
            make_dispatcher('fe1', 'fe2').send(make_request())

        messages = [r.getMessage() for r in caplog.records]
        assert any('attempt 1/2' in m and 'fe1' in m for m in messages)
        assert any('failed' in m and 'fe1' in m for m in messages)
        assert any('attempt 2/2' in m and 'fe2' in m for m in messages)


@pytest.mark.integration
class TestRedirect:
    """Test the coordinator to worker 307 hand-off"""

    @respx.mock
    def test_redirect_replays_body_and_headers(self):
        """Test the 307 target receives the same method, headers, body and auth."""
        worker_url = f'http://be1:8040{PATH}'
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(307, headers={'Location': worker_url}))
        be1 = respx.put(worker_url).mock(return_value=Response(200, json={'Status': 'Success'}))

        dispatcher = make_dispatcher('fe1', 'fe2', auth=httpx.BasicAuth('root', 'secret'))
        response = dispatcher.send(make_request())

        assert response.status_code == 200
        assert fe1.call_count == 1
        assert be1.call_count == 1

        original = fe1.calls.last.request
        replayed = be1.calls.last.request
        assert replayed.method == 'PUT'
        assert replayed.content == original.content == BODY
        ignored = {'host'}
        assert {k: v for k, v in original.headers.items() if k not in ignored} == {
            k: v for k, v in replayed.headers.items() if k not in ignored
        }
        assert replayed.headers['authorization'] == original.headers['authorization']
        assert replayed.headers['authorization'].startswith('Basic ')

    @respx.mock
    def test_redirect_without_location(self):
        """Test a 307 without Location is fatal and nothing else is contacted."""
        fe1 = respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(307))
        fe2 = respx.put(f'http://fe2:8030{PATH}')

        dispatcher = make_dispatcher('fe1', 'fe2')

        with pytest.raises(RedirectError, match='without Location header'):
            dispatcher.send(make_request())

        assert fe1.call_count == 1
        assert fe2.call_count == 0
        assert len(respx.calls) == 1

    @respx.mock
    def test_redirect_target_unreachable(self):
        """Test a dead redirect target is not retried through the pool."""
        worker_url = f'http://be1:8040{PATH}'
        respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(307, headers={'Location': worker_url}))
        be1 = respx.put(worker_url).mock(side_effect=httpx.ConnectError)
        fe2 = respx.put(f'http://fe2:8030{PATH}')

        dispatcher = make_dispatcher('fe1', 'fe2')

        with pytest.raises(TransportError, match='redirect request'):
            dispatcher.send(make_request())

        assert be1.call_count == 1
        assert fe2.call_count == 0

    @respx.mock
    def test_redirect_for_bodyless_request(self):
        path = '/api/transaction/commit'
        worker_url = f'http://be1:8040{path}'
        respx.post(f'http://fe1:8030{path}').mock(return_value=Response(307, headers={'Location': worker_url}))
        be1 = respx.post(worker_url).mock(return_value=Response(200, json={'Status': 'OK'}))

        dispatcher = make_dispatcher('fe1')
        response = dispatcher.send(RequestTemplate('POST', path, {'label': 'txn-1'}, operation='commit transaction'))

        assert response.json() == {'Status': 'OK'}
        assert be1.calls.last.request.headers['label'] == 'txn-1'
        assert be1.calls.last.request.content == b''

    @respx.mock
    def test_only_one_redirect_followed(self):
        """Test a second 307 is returned as-is."""
        worker_url = f'http://be1:8040{PATH}'
        respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(307, headers={'Location': worker_url}))
        respx.put(worker_url).mock(return_value=Response(307, headers={'Location': f'http://be2:8040{PATH}'}))

        response = make_dispatcher('fe1').send(make_request())

        assert response.status_code == 307

    @respx.mock
    def test_relative_location_resolved_against_coordinator(self):
        respx.put(f'http://fe1:8030{PATH}').mock(return_value=Response(307, headers={'Location': '/elsewhere'}))
        target = respx.put('http://fe1:8030/elsewhere').mock(return_value=Response(200, json={}))

        make_dispatcher('fe1').send(make_request())

        assert target.call_count == 1
