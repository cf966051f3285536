"""
Pages Routes - Home, about, contact and cache revalidation
"""

import time
from flask import render_template, redirect, url_for, request, flash, jsonify, current_app
from utils.api_client import get_api
from utils.helpers import safe_listing
from utils.cache import cached_fetch, get_page_cache
from . import pages_bp

HOME_PROJECT_COUNT = 3
HOME_BLOG_COUNT = 3


@pages_bp.route('/')
def index():
    """Landing page - hero, recent projects and blogs"""
    api = get_api()
    projects = cached_fetch(lambda: safe_listing(api.list_projects, 'Projects'), path='/projects') or []
    blogs = cached_fetch(lambda: safe_listing(api.list_blogs, 'Blogs'), path='/blogs') or []
    return render_template('pages/index.html',
                           projects=projects[:HOME_PROJECT_COUNT],
                           blogs=blogs[:HOME_BLOG_COUNT])


@pages_bp.route('/about')
def about():
    """About page"""
    return render_template('pages/about.html')


@pages_bp.route('/contact', methods=['GET', 'POST'])
def contact():
    """Contact page; messages are acknowledged, not stored"""
    if request.method == 'POST':
        message = request.form.get('message', '').strip()
        if not message:
            flash('Please enter a message.', 'error')
            return render_template('pages/contact.html'), 400
        flash('Message sent. I usually reply within a day.', 'success')
        return redirect(url_for('pages.contact'))
    return render_template('pages/contact.html')


@pages_bp.route('/api/revalidate', methods=['POST'])
def revalidate():
    """Invalidate cached data for a public page path"""
    body = request.get_json(silent=True) or {}
    path = body.get('path')
    if not path:
        return jsonify({'revalidated': False, 'message': 'Path missing'}), 400
    try:
        get_page_cache().invalidate(path)
    except Exception as e:
        current_app.logger.error(f"Error revalidating {path}: {str(e)}")
        return jsonify({'revalidated': False, 'message': 'Error revalidating'}), 500
    return jsonify({'revalidated': True, 'now': int(time.time() * 1000)})
