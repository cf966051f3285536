"""
API Client Module - Access to the external portfolio REST API

The front end never stores content itself. Every blog, project and session
lookup goes through PortfolioAPI, which forwards the API session cookie kept
in the signed Flask session and narrows responses into explicit result types.
"""

import json
import logging

import requests
from flask import current_app, g, session
from pydantic import ValidationError

from .schemas import Blog, BlogPage, Project, ProjectPage, SaveResult, SessionIdentity

logger = logging.getLogger(__name__)

API_COOKIES_KEY = 'api_cookies'
GENERIC_ERROR = 'Something went wrong'


class ApiError(Exception):
    """Non-success response from the API"""

    def __init__(self, message, status=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload or {}

    @property
    def not_found(self):
        return self.status == 404


class ApiTransportError(ApiError):
    """The API could not be reached"""


class CancelledRequest(Exception):
    """The caller abandoned the request before its result was applied"""


class PortfolioAPI:
    """Thin wrapper around a requests session bound to one API base URL"""

    def __init__(self, base_url, cookies=None, timeout=10, http=None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.http = http or requests.Session()
        if cookies:
            self.http.cookies.update(cookies)

    @property
    def cookies(self):
        return requests.utils.dict_from_cookiejar(self.http.cookies)

    def _url(self, path):
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method, path, cancel_token=None, **kwargs):
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.http.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            raise ApiTransportError(f"API unreachable: {e}") from e

        if cancel_token is not None and cancel_token.cancelled:
            raise CancelledRequest(f"{method} {path} cancelled")

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {'data': payload}

        if not response.ok:
            message = payload.get('message') or GENERIC_ERROR
            raise ApiError(message, status=response.status_code, payload=payload)
        return payload

    def _narrow(self, model, data):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"API returned an invalid {model.__name__} payload: {e.error_count()} error(s)")
            raise ApiError(f"Unexpected {model.__name__} payload from API", payload={'errors': e.errors()}) from e

    # Auth

    @staticmethod
    def _identity_from(payload):
        data = payload.get('data')
        user = None
        if isinstance(data, dict):
            user = data.get('user')
        return user or payload.get('user')

    def current_user(self, cancel_token=None):
        """GET /auth/user; None when the payload carries no identity"""
        payload = self._request('GET', '/auth/user', cancel_token=cancel_token,
                                headers={'Cache-Control': 'no-store'})
        user = self._identity_from(payload)
        if not user:
            return None
        return self._narrow(SessionIdentity, user)

    def login(self, email, password):
        payload = self._request('POST', '/auth/login', json={'email': email, 'password': password})
        user = self._identity_from(payload)
        if not user:
            raise ApiError('Login response did not include a user', payload=payload)
        return self._narrow(SessionIdentity, user)

    def logout(self):
        self._request('POST', '/auth/logout')
        self.http.cookies.clear()

    # Blogs

    def list_blogs(self, page=None, limit=None):
        params = {}
        if page:
            params['page'] = page
        if limit:
            params['limit'] = limit
        payload = self._request('GET', '/blogs', params=params or None)
        return self._narrow(BlogPage, {'items': payload.get('data') or [], 'meta': payload.get('meta') or {}})

    def get_blog(self, slug):
        payload = self._request('GET', f'/blogs/{slug}')
        return self._narrow(Blog, payload.get('data'))

    def create_blog(self, data, files=None):
        return self._save('POST', '/blogs', data, files)

    def update_blog(self, blog_id, data, files=None):
        return self._save('PATCH', f'/blogs/{blog_id}', data, files)

    def delete_blog(self, blog_id):
        self._request('DELETE', f'/blogs/{blog_id}')

    def toggle_blog_featured(self, blog_id):
        self._request('PATCH', f'/blogs/toggleIsFeatured/{blog_id}')

    # Projects

    def list_projects(self, page=None, limit=None):
        params = {}
        if page:
            params['page'] = page
        if limit:
            params['limit'] = limit
        payload = self._request('GET', '/projects', params=params or None)
        return self._narrow(ProjectPage, {'items': payload.get('data') or [], 'meta': payload.get('meta') or {}})

    def get_project(self, slug):
        payload = self._request('GET', f'/projects/{slug}')
        return self._narrow(Project, payload.get('data'))

    def create_project(self, data, files=None):
        return self._save('POST', '/projects', data, files)

    def update_project(self, project_id, data, files=None):
        return self._save('PATCH', f'/projects/{project_id}', data, files)

    def delete_project(self, project_id):
        self._request('DELETE', f'/projects/{project_id}')

    def _save(self, method, path, data, files):
        """Multipart submission: JSON metadata in ``data`` plus binary parts"""
        form = {'data': json.dumps(data, ensure_ascii=False)}
        payload = self._request(method, path, data=form, files=files or None)
        result = payload.get('data')
        if not isinstance(result, dict):
            result = {}
        return self._narrow(SaveResult, result)


def build_api(app=None):
    """Build an API client for the current request, forwarding stored cookies"""
    app = app or current_app
    factory = app.extensions.get('portfolio_api_factory')
    cookies = session.get(API_COOKIES_KEY) or {}
    if factory is not None:
        return factory(cookies)
    return PortfolioAPI(app.config['API_BASE_URL'], cookies=cookies, timeout=app.config.get('API_TIMEOUT', 10))


def get_api():
    """Request-scoped API client"""
    if 'api' not in g:
        g.api = build_api()
    return g.api


def remember_api_cookies(api):
    session[API_COOKIES_KEY] = api.cookies
    session.modified = True


def forget_api_cookies():
    session.pop(API_COOKIES_KEY, None)


__all__ = [
    'ApiError',
    'ApiTransportError',
    'CancelledRequest',
    'PortfolioAPI',
    'build_api',
    'forget_api_cookies',
    'get_api',
    'remember_api_cookies',
]
