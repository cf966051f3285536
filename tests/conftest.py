import json
import pytest

from app import create_app
from extensions import db
from utils.api_client import ApiError
from utils.schemas import Blog, BlogPage, PageMeta, Project, ProjectPage, SaveResult, SessionIdentity


def delta_json(*ops):
    return json.dumps({'ops': list(ops)})


LONG_DESCRIPTION = 'A dashboard that tracks every deployment across staging and production.'


class FakeAPI:
    """In-memory stand-in for PortfolioAPI used through the app's api_factory"""

    def __init__(self):
        self.user = None
        self.blogs = []
        self.projects = []
        self.calls = []
        self.login_error = None
        self.logout_error = None
        self.save_error = None
        self._cookies = {}

    @property
    def cookies(self):
        return dict(self._cookies)

    # Auth

    def current_user(self, cancel_token=None):
        self.calls.append(('current_user',))
        return self.user

    def login(self, email, password):
        self.calls.append(('login', email))
        if self.login_error:
            raise self.login_error
        self.user = SessionIdentity(id='1', name='Admin', email=email, role='ADMIN')
        self._cookies = {'accessToken': 'token-123'}
        return self.user

    def logout(self):
        self.calls.append(('logout',))
        self.user = None
        self._cookies = {}
        if self.logout_error:
            raise self.logout_error

    # Blogs

    def list_blogs(self, page=None, limit=None):
        self.calls.append(('list_blogs', page, limit))
        return BlogPage(items=self.blogs, meta=PageMeta(total=len(self.blogs), page=page or 1, limit=limit))

    def get_blog(self, slug):
        self.calls.append(('get_blog', slug))
        for blog in self.blogs:
            if blog.slug == slug:
                return blog
        raise ApiError('Blog not found', status=404)

    def create_blog(self, data, files=None):
        self.calls.append(('create_blog', data, files))
        if self.save_error:
            raise self.save_error
        return SaveResult(id='b-new', slug='new-blog')

    def update_blog(self, blog_id, data, files=None):
        self.calls.append(('update_blog', blog_id, data, files))
        if self.save_error:
            raise self.save_error
        return SaveResult(id=blog_id, slug='renamed-blog')

    def delete_blog(self, blog_id):
        self.calls.append(('delete_blog', blog_id))

    def toggle_blog_featured(self, blog_id):
        self.calls.append(('toggle_blog_featured', blog_id))

    # Projects

    def list_projects(self, page=None, limit=None):
        self.calls.append(('list_projects', page, limit))
        return ProjectPage(items=self.projects, meta=PageMeta(total=len(self.projects)))

    def get_project(self, slug):
        self.calls.append(('get_project', slug))
        for project in self.projects:
            if project.slug == slug:
                return project
        raise ApiError('Project not found', status=404)

    def create_project(self, data, files=None):
        self.calls.append(('create_project', data, files))
        if self.save_error:
            raise self.save_error
        return SaveResult(id='p-new', slug='new-project')

    def update_project(self, project_id, data, files=None):
        self.calls.append(('update_project', project_id, data, files))
        if self.save_error:
            raise self.save_error
        return SaveResult(id=project_id, slug='tracker')

    def delete_project(self, project_id):
        self.calls.append(('delete_project', project_id))

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


def make_blog(**overrides):
    data = {
        'id': 'b1',
        'title': 'Hello World',
        'slug': 'hello-world',
        'excerpt': 'A first post about building this site.',
        'content': delta_json({'insert': 'Hello '}, {'insert': 'world', 'attributes': {'bold': True}},
                              {'insert': '\n'}),
        'tags': ['flask'],
    }
    data.update(overrides)
    return Blog(**data)


def make_project(**overrides):
    data = {
        'id': 'p1',
        'title': 'Tracker',
        'slug': 'tracker',
        'description': delta_json({'insert': LONG_DESCRIPTION + '\n'}),
        'techStack': ['Python', 'Flask'],
        'features': ['Dashboards'],
        'liveUrl': 'https://tracker.example.com',
    }
    data.update(overrides)
    return Project(**data)


@pytest.fixture()
def fake_api():
    return FakeAPI()


@pytest.fixture()
def app(fake_api):
    app = create_app('testing', api_factory=lambda cookies: fake_api)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin(fake_api):
    fake_api.user = SessionIdentity(id='1', name='Admin', email='admin@example.com', role='ADMIN')
    return fake_api.user
