"""
Dashboard Routes - Admin content management
Handles: Overview, blogs, projects and draft autosave endpoints

Every view is gated by ``admin_required``; content itself lives behind the
external API and is written through multipart submissions.
"""

from flask import render_template, redirect, url_for, request, flash, current_app, jsonify, g
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from utils.api_client import ApiError, get_api
from utils.cache import revalidate_path
from utils.decorators import admin_required
from utils.delta import DeltaFormatError
from utils.drafts import (BLOG_DRAFT_FIELDS, BLOG_DRAFT_KEY, PROJECT_DRAFT_FIELDS, PROJECT_DRAFT_KEY,
                          DraftStore, clean_snapshot)
from utils.editor import (EditorSession, SubmissionInProgress, build_blog_payload, build_project_payload,
                          editor_from_submission, file_part)
from utils.helpers import check_image, parse_page, present_uploads, total_pages
from utils.schemas import BlogForm, ProjectForm, field_errors
from . import dashboard_bp

DRAFT_FIELDS = {
    BLOG_DRAFT_KEY: BLOG_DRAFT_FIELDS,
    PROJECT_DRAFT_KEY: PROJECT_DRAFT_FIELDS,
}


def _owner_id():
    return g.auth.user.id


def _draft_store():
    return DraftStore(_owner_id())


def _clear_draft(key):
    """Drop the create draft after a successful save; storage errors only get logged"""
    try:
        _draft_store().clear(key)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Draft {key} could not be cleared after save: {str(e)}")


def _api_failure(e, action):
    """Flash the server's message (or a generic one) for a failed API call"""
    current_app.logger.error(f"{action} failed: {e.message} (status {e.status})")
    flash(e.message or 'Something went wrong', 'error')


def _submission_guard():
    return current_app.extensions['submission_guard']


def _editor_for(stored, submitted, errors, field):
    """Editor state for a posted form; a malformed delta becomes a field error"""
    try:
        return editor_from_submission(stored, submitted or None)
    except DeltaFormatError as e:
        current_app.logger.warning(f"Rejected malformed editor payload: {e}")
        errors[field] = 'Content could not be read, please try again'
        return EditorSession(stored)


def _count(loader, label):
    try:
        return loader(page=1, limit=1).meta.total
    except ApiError as e:
        current_app.logger.error(f"{label} count error: {e.message}")
        return None


# ==================== Overview ====================

@dashboard_bp.route('/')
@admin_required
def index():
    """Dashboard overview with content counts"""
    api = get_api()
    stats = {
        'blogs': _count(api.list_blogs, 'Blogs'),
        'projects': _count(api.list_projects, 'Projects'),
    }
    return render_template('dashboard/index.html', stats=stats)


# ==================== Blogs ====================

@dashboard_bp.route('/manage-blogs')
@admin_required
def manage_blogs():
    """Paginated blog list with delete and featured toggle"""
    page = parse_page(request.args.get('page'))
    limit = current_app.config.get('DASHBOARD_PAGE_SIZE', 10)
    blogs, total = [], 0
    try:
        result = get_api().list_blogs(page=page, limit=limit)
        blogs, total = result.items, result.meta.total
    except ApiError as e:
        _api_failure(e, 'Loading blogs')
    return render_template('dashboard/manage_blogs.html',
                           blogs=blogs,
                           page=page,
                           pages=total_pages(total, limit),
                           total=total)


@dashboard_bp.route('/blogs/<blog_id>/delete', methods=['POST'])
@admin_required
def delete_blog(blog_id):
    page = parse_page(request.form.get('page'))
    try:
        get_api().delete_blog(blog_id)
    except ApiError as e:
        _api_failure(e, f'Deleting blog {blog_id}')
        return redirect(url_for('dashboard.manage_blogs', page=page))
    revalidate_path('/blogs')
    flash('Blog deleted successfully', 'success')
    return redirect(url_for('dashboard.manage_blogs', page=page))


@dashboard_bp.route('/blogs/<blog_id>/toggle-featured', methods=['POST'])
@admin_required
def toggle_blog_featured(blog_id):
    page = parse_page(request.form.get('page'))
    try:
        get_api().toggle_blog_featured(blog_id)
    except ApiError as e:
        _api_failure(e, f'Toggling featured on blog {blog_id}')
        return redirect(url_for('dashboard.manage_blogs', page=page))
    revalidate_path('/blogs')
    flash('Featured status updated', 'success')
    return redirect(url_for('dashboard.manage_blogs', page=page))


def _blog_values(source):
    tags = source.get('tags', '')
    if isinstance(tags, list):
        tags = ', '.join(tags)
    return {
        'title': source.get('title', ''),
        'excerpt': source.get('excerpt', ''),
        'tags': tags or '',
    }


def _draft_files(draft, fields):
    """File names a draft remembered per upload field; files themselves are not stored"""
    names = {}
    for field in fields:
        value = draft.get(field)
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            value = [str(name) for name in value if name]
            if value:
                names[field] = value
    return names


def _render_blog_form(mode, values, editor, errors=None, blog=None, status=200, draft_files=None):
    return render_template('dashboard/blog_form.html',
                           draft_files=draft_files or {},
                           mode=mode,
                           values=values,
                           editor=editor,
                           errors=errors or {},
                           blog=blog,
                           draft_key=BLOG_DRAFT_KEY if mode == 'create' else None), status


def _submit_blog(mode, blog=None):
    """Validate and send a blog form; returns a response"""
    values = _blog_values(request.form)
    errors = {}
    editor = _editor_for(blog.content if blog else None, request.form.get('content'), errors, 'content')

    form = None
    try:
        form = BlogForm(title=values['title'], excerpt=values['excerpt'],
                        content=editor.serialized(), tags=values['tags'])
    except ValidationError as e:
        for field, message in field_errors(e, 'blog').items():
            errors.setdefault(field, message)

    cover = request.files.get('file')
    image_error = check_image(cover)
    if image_error:
        errors['file'] = image_error

    if errors:
        return _render_blog_form(mode, values, editor, errors, blog, 400)

    files = [file_part('file', cover)] if cover and cover.filename else []
    payload = build_blog_payload(form, editor.get_contents())
    api = get_api()
    key = (_owner_id(), f'blog:{mode}:{blog.id if blog else "new"}')
    try:
        with _submission_guard().hold(key):
            if mode == 'create':
                result = api.create_blog(payload, files)
            else:
                result = api.update_blog(blog.id, payload, files)
    except SubmissionInProgress:
        flash('A save is already in progress.', 'warning')
        return _render_blog_form(mode, values, editor, errors, blog, 409)
    except ApiError as e:
        _api_failure(e, f'Saving blog ({mode})')
        return _render_blog_form(mode, values, editor, errors, blog, 502)

    revalidate_path('/blogs')
    if mode == 'create':
        _clear_draft(BLOG_DRAFT_KEY)
        current_app.logger.info(f"Blog created: {result.slug}")
        flash('Blog created successfully', 'success')
        return redirect(url_for('portfolio.blog_list'))

    current_app.logger.info(f"Blog updated: {result.slug or blog.slug}")
    flash('Blog updated successfully', 'success')
    return redirect(url_for('portfolio.blog_detail', slug=result.slug or blog.slug))


@dashboard_bp.route('/create-blog', methods=['GET', 'POST'])
@admin_required
def create_blog():
    """New blog post; the form is prefilled from a stored draft"""
    if request.method == 'POST':
        return _submit_blog('create')

    draft = _draft_store().get(BLOG_DRAFT_KEY) or {}
    values = _blog_values(draft)
    return _render_blog_form('create', values, EditorSession(draft.get('content')),
                             draft_files=_draft_files(draft, ('coverImage',)))


@dashboard_bp.route('/update-blog/<slug>', methods=['GET', 'POST'])
@admin_required
def update_blog(slug):
    """Edit an existing blog; the editor is seeded from its stored content"""
    try:
        blog = get_api().get_blog(slug)
    except ApiError as e:
        if e.not_found:
            flash('Blog not found', 'error')
        else:
            _api_failure(e, f'Loading blog {slug}')
        return redirect(url_for('dashboard.manage_blogs'))

    if request.method == 'POST':
        return _submit_blog('update', blog)

    values = {'title': blog.title, 'excerpt': blog.excerpt, 'tags': ', '.join(blog.tags)}
    return _render_blog_form('update', values, EditorSession(blog.content), blog=blog)


# ==================== Projects ====================

@dashboard_bp.route('/manage-projects')
@admin_required
def manage_projects():
    """List all projects"""
    projects = []
    try:
        projects = get_api().list_projects().items
    except ApiError as e:
        _api_failure(e, 'Loading projects')
    return render_template('dashboard/manage_projects.html', projects=projects)


@dashboard_bp.route('/projects/<project_id>/delete', methods=['POST'])
@admin_required
def delete_project(project_id):
    try:
        get_api().delete_project(project_id)
    except ApiError as e:
        _api_failure(e, f'Deleting project {project_id}')
        return redirect(url_for('dashboard.manage_projects'))
    revalidate_path('/projects')
    flash('Project deleted successfully', 'success')
    return redirect(url_for('dashboard.manage_projects'))


def _project_values(source):
    values = {}
    for field, alias in (('title', 'title'), ('live_url', 'liveUrl'), ('repo_url', 'repoUrl'),
                         ('tech_stack', 'techStack'), ('features', 'features')):
        value = source.get(field, source.get(alias, ''))
        if isinstance(value, list):
            value = ', '.join(value)
        values[field] = value or ''
    return values


def _render_project_form(mode, values, editor, errors=None, project=None, status=200, draft_files=None):
    return render_template('dashboard/project_form.html',
                           draft_files=draft_files or {},
                           mode=mode,
                           values=values,
                           editor=editor,
                           errors=errors or {},
                           project=project,
                           draft_key=PROJECT_DRAFT_KEY if mode == 'create' else None), status


def _submit_project(mode, project=None):
    """Validate and send a project form; returns a response"""
    values = _project_values(request.form)
    errors = {}
    editor = _editor_for(project.description if project else None, request.form.get('description'),
                         errors, 'description')

    form = None
    try:
        form = ProjectForm(title=values['title'], description=editor.serialized(),
                           live_url=values['live_url'], repo_url=values['repo_url'],
                           tech_stack=values['tech_stack'], features=values['features'])
    except ValidationError as e:
        for field, message in field_errors(e, 'project').items():
            errors.setdefault(field, message)

    thumbnail = request.files.get('thumbnail')
    if mode == 'create' and not (thumbnail and thumbnail.filename):
        errors['thumbnail'] = 'Thumbnail is required'
    else:
        image_error = check_image(thumbnail)
        if image_error:
            errors['thumbnail'] = image_error

    if errors:
        return _render_project_form(mode, values, editor, errors, project, 400)

    files = []
    if thumbnail and thumbnail.filename:
        files.append(file_part('thumbnail', thumbnail))
    for upload in present_uploads(request.files, 'demoImages'):
        image_error = check_image(upload)
        if image_error:
            current_app.logger.warning(f"Skipped demo image: {image_error}")
            flash(f'{image_error} (skipped)', 'warning')
            continue
        files.append(file_part('demoImages', upload))

    payload = build_project_payload(form, editor.get_contents())
    api = get_api()
    key = (_owner_id(), f'project:{mode}:{project.id if project else "new"}')
    try:
        with _submission_guard().hold(key):
            if mode == 'create':
                result = api.create_project(payload, files)
            else:
                result = api.update_project(project.id, payload, files)
    except SubmissionInProgress:
        flash('A save is already in progress.', 'warning')
        return _render_project_form(mode, values, editor, errors, project, 409)
    except ApiError as e:
        _api_failure(e, f'Saving project ({mode})')
        return _render_project_form(mode, values, editor, errors, project, 502)

    revalidate_path('/projects')
    if mode == 'create':
        _clear_draft(PROJECT_DRAFT_KEY)
        current_app.logger.info(f"Project created: {result.slug}")
        flash('Project created successfully', 'success')
        return redirect(url_for('dashboard.manage_projects'))

    current_app.logger.info(f"Project updated: {result.slug or project.slug}")
    flash('Project updated successfully', 'success')
    return redirect(url_for('portfolio.project_detail', slug=result.slug or project.slug))


@dashboard_bp.route('/add-project', methods=['GET', 'POST'])
@admin_required
def add_project():
    """New project; the form is prefilled from a stored draft"""
    if request.method == 'POST':
        return _submit_project('create')

    draft = _draft_store().get(PROJECT_DRAFT_KEY) or {}
    stored = draft.get('description') or draft.get('content')
    return _render_project_form('create', _project_values(draft), EditorSession(stored),
                                draft_files=_draft_files(draft, ('thumbnail', 'demoImages')))


@dashboard_bp.route('/update-project/<slug>', methods=['GET', 'POST'])
@admin_required
def update_project(slug):
    """Edit an existing project; the editor is seeded from its stored description"""
    try:
        project = get_api().get_project(slug)
    except ApiError as e:
        if e.not_found:
            flash('Project not found', 'error')
        else:
            _api_failure(e, f'Loading project {slug}')
        return redirect(url_for('dashboard.manage_projects'))

    if request.method == 'POST':
        return _submit_project('update', project)

    values = {
        'title': project.title,
        'live_url': project.live_url or '',
        'repo_url': project.repo_url or '',
        'tech_stack': ', '.join(project.tech_stack),
        'features': ', '.join(project.features),
    }
    return _render_project_form('update', values, EditorSession(project.description), project=project)


# ==================== Drafts ====================

@dashboard_bp.route('/drafts/<key>', methods=['GET', 'POST', 'DELETE'])
@admin_required
def draft(key):
    """Autosave endpoint driven by the browser editor"""
    fields = DRAFT_FIELDS.get(key)
    if fields is None:
        return jsonify({'error': 'Unknown draft'}), 404

    store = _draft_store()
    try:
        if request.method == 'GET':
            row = store.find(key)
            if row is None:
                return jsonify({'key': key, 'payload': None, 'updated_at': None})
            return jsonify(row.to_dict())

        if request.method == 'DELETE':
            cleared = store.clear(key)
            current_app.logger.info(f"Draft {key} cleared for {_owner_id()}")
            return jsonify({'cleared': cleared})

        snapshot = clean_snapshot(request.get_json(silent=True), fields)
        store.save(key, snapshot)
        return jsonify({'saved': True, 'fields': sorted(snapshot)})
    except SQLAlchemyError as e:
        current_app.logger.error(f"Draft {key} storage error: {str(e)}")
        return jsonify({'error': 'Draft storage unavailable'}), 500
