import json

import pytest
import requests
from requests.cookies import RequestsCookieJar

from utils.api_client import ApiError, ApiTransportError, CancelledRequest, PortfolioAPI
from utils.session_state import CancelToken


class FakeResponse:
    def __init__(self, status_code=200, payload=None, body=None):
        self.status_code = status_code
        self._payload = payload
        self._body = body

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is not None:
            return json.loads(self._body)
        return self._payload


class FakeHTTP:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.cookies = RequestsCookieJar()

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_api(*responses, **kwargs):
    http = FakeHTTP(*responses)
    return PortfolioAPI('http://api.test/v1/', http=http, **kwargs), http


def test_current_user_reads_nested_identity():
    api, http = make_api(FakeResponse(payload={'data': {'user': {'id': 7, 'name': 'Ada', 'role': 'ADMIN'}}}))
    user = api.current_user()
    assert user.id == '7'
    assert user.role == 'ADMIN'
    method, url, kwargs = http.requests[0]
    assert (method, url) == ('GET', 'http://api.test/v1/auth/user')
    assert kwargs['headers'] == {'Cache-Control': 'no-store'}


def test_current_user_reads_top_level_identity_or_none():
    api, _ = make_api(FakeResponse(payload={'user': {'id': '3'}}), FakeResponse(payload={'data': {}}))
    assert api.current_user().id == '3'
    assert api.current_user() is None


def test_cancelled_lookup_raises():
    token = CancelToken()
    token.cancel()
    api, _ = make_api(FakeResponse(payload={'user': {'id': '3'}}))
    with pytest.raises(CancelledRequest):
        api.current_user(cancel_token=token)


def test_error_status_carries_server_message():
    api, _ = make_api(FakeResponse(401, payload={'message': 'Invalid password'}), FakeResponse(500, body='oops'))
    with pytest.raises(ApiError) as exc:
        api.login('a@example.com', 'x')
    assert exc.value.status == 401
    assert exc.value.message == 'Invalid password'

    with pytest.raises(ApiError) as exc:
        api.get_blog('missing')
    assert exc.value.message == 'Something went wrong'


def test_transport_failure():
    api, _ = make_api(requests.ConnectionError('refused'))
    with pytest.raises(ApiTransportError):
        api.list_blogs()


def test_list_blogs_narrows_page():
    api, http = make_api(FakeResponse(payload={
        'data': [{'_id': 'x', 'id': 1, 'title': 'First', 'slug': 'first',
                  'content': {'ops': [{'insert': 'Hi\n'}]}, 'isFeatured': True}],
        'meta': {'total': 11, 'page': 2, 'limit': 10},
    }))
    page = api.list_blogs(page=2, limit=10)
    assert http.requests[0][2]['params'] == {'page': 2, 'limit': 10}
    assert page.meta.total == 11
    blog = page.items[0]
    assert blog.id == '1'
    assert blog.is_featured
    assert json.loads(blog.content) == {'ops': [{'insert': 'Hi\n'}]}


def test_invalid_payload_is_rejected_at_boundary():
    api, _ = make_api(FakeResponse(payload={'data': {'title': 'No slug'}}))
    with pytest.raises(ApiError):
        api.get_blog('x')


def test_save_sends_json_data_part_with_files():
    api, http = make_api(FakeResponse(payload={'data': {'id': 5, 'slug': 'new-post'}}))
    files = [('file', ('cover.png', b'img', 'image/png'))]
    result = api.create_blog({'blog': {'title': 'T'}}, files)
    method, url, kwargs = http.requests[0]
    assert (method, url) == ('POST', 'http://api.test/v1/blogs')
    assert json.loads(kwargs['data']['data']) == {'blog': {'title': 'T'}}
    assert kwargs['files'] == files
    assert (result.id, result.slug) == ('5', 'new-post')


def test_toggle_featured_and_delete_paths():
    api, http = make_api(FakeResponse(payload={}), FakeResponse(payload={}))
    api.toggle_blog_featured('b1')
    api.delete_project('p1')
    assert [(m, u) for m, u, _ in http.requests] == [
        ('PATCH', 'http://api.test/v1/blogs/toggleIsFeatured/b1'),
        ('DELETE', 'http://api.test/v1/projects/p1'),
    ]


def test_logout_clears_forwarded_cookies():
    api, http = make_api(FakeResponse(payload={}), cookies={'accessToken': 'abc'})
    assert api.cookies == {'accessToken': 'abc'}
    api.logout()
    assert api.cookies == {}
