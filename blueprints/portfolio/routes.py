"""
Portfolio Routes - Public blog and project views
Handles: Blog list/detail, Project list/detail
"""

from flask import render_template, abort, current_app
from markupsafe import Markup
from utils.api_client import ApiError, get_api
from utils.cache import cached_fetch
from utils.converter import count_words, extract_text, reading_time, render_html, resolve_content
from utils.helpers import safe_listing
from . import portfolio_bp


def _fetch_record(loader, slug, label):
    """Single record by slug, or None when missing or the API fails"""
    try:
        return loader(slug)
    except ApiError as e:
        if not e.not_found:
            current_app.logger.error(f"{label} fetch error for {slug}: {e.message}")
        return None


def _rendered(stored):
    """HTML and reading time for stored content; the variant is resolved once"""
    content = resolve_content(stored)
    html = render_html(content, original=stored if isinstance(stored, str) else None)
    return Markup(html), reading_time(count_words(extract_text(content)))


@portfolio_bp.route('/blogs')
def blog_list():
    api = get_api()
    blogs = cached_fetch(lambda: safe_listing(api.list_blogs, 'Blogs'), path='/blogs') or []
    return render_template('blogs/list.html', blogs=blogs)


@portfolio_bp.route('/blogs/<slug>')
def blog_detail(slug):
    api = get_api()
    blog = cached_fetch(lambda: _fetch_record(api.get_blog, slug, 'Blog'), path=f'/blogs/{slug}')
    if blog is None:
        abort(404)
    body, minutes = _rendered(blog.content)
    return render_template('blogs/detail.html', blog=blog, body=body, minutes=minutes)


@portfolio_bp.route('/projects')
def project_list():
    api = get_api()
    projects = cached_fetch(lambda: safe_listing(api.list_projects, 'Projects'), path='/projects') or []
    return render_template('projects/list.html', projects=projects)


@portfolio_bp.route('/projects/<slug>')
def project_detail(slug):
    api = get_api()
    project = cached_fetch(lambda: _fetch_record(api.get_project, slug, 'Project'), path=f'/projects/{slug}')
    if project is None:
        abort(404)
    body, _ = _rendered(project.description)
    return render_template('projects/detail.html', project=project, body=body)
