"""
Editor Module - Write path for rich blog content and project descriptions

EditorSession owns the structured delta during an editing session. The
browser editor posts its delta back as JSON; the session validates it,
keeps the word count current and hands the delta to the submission builders.
"""

import threading
from contextlib import contextmanager

from werkzeug.utils import secure_filename

from .converter import count_words, extract_text, reading_time, render_html, resolve_content
from .delta import Delta, DeltaContent, DeltaFormatError


class SubmissionInProgress(Exception):
    """A save for this form instance is already in flight"""


class EditorSession:
    """Rich content editing session seeded from stored content"""

    def __init__(self, stored=None):
        content = resolve_content(stored)
        self.initial_html = render_html(content)
        if isinstance(content, DeltaContent):
            self._delta = content.delta
        else:
            self._delta = Delta.from_text(extract_text(content)) if content.text else Delta()
        self._listeners = []
        self.word_count = 0
        self._recount()

    def on_change(self, listener):
        self._listeners.append(listener)

    def _recount(self):
        self.word_count = count_words(self._delta.plain_text())

    def _changed(self):
        self._recount()
        for listener in list(self._listeners):
            listener(self)

    def set_contents(self, value):
        """Replace the document with a delta, ops list or serialized delta"""
        if isinstance(value, Delta):
            delta = value
        elif isinstance(value, list):
            delta = Delta.from_ops(value)
        elif isinstance(value, dict):
            delta = Delta.from_ops(value.get('ops'))
        else:
            delta = Delta.loads(value)
        self._delta = delta
        self._changed()
        return self

    def insert_text(self, text, attributes=None):
        """Insert text before the document's closing newline"""
        ops = list(self._delta.ops)
        trailing = None
        if ops and ops[-1].is_text and ops[-1].insert.endswith('\n') and not ops[-1].attributes:
            last = ops.pop()
            head = last.insert[:-1]
            trailing = '\n'
            if head:
                ops.append(type(last)(insert=head, attributes={}))
        delta = Delta(ops=ops)
        delta.insert(text, attributes)
        if trailing:
            delta.insert(trailing)
        self._delta = delta
        self._changed()
        return self

    def get_contents(self):
        return Delta(ops=list(self._delta.ops))

    @property
    def html(self):
        return render_html(DeltaContent(self._delta))

    @property
    def reading_time(self):
        return reading_time(self.word_count)

    def is_empty(self):
        return not self._delta.plain_text().strip() and not any(not op.is_text for op in self._delta.ops)

    def serialized(self):
        return self._delta.dumps()


def editor_from_submission(stored, submitted):
    """Editor state for a form post; raises DeltaFormatError on a bad payload"""
    editor = EditorSession(stored)
    if submitted:
        editor.set_contents(submitted)
    return editor


def build_blog_payload(form, delta):
    """{"blog": {...}} metadata for the multipart ``data`` field"""
    return {
        'blog': {
            'title': form.title,
            'excerpt': form.excerpt,
            'content': delta.dumps(),
            'tags': list(form.tags),
        }
    }


def build_project_payload(form, delta):
    """{"project": {...}} metadata for the multipart ``data`` field"""
    return {
        'project': {
            'title': form.title,
            'description': delta.dumps(),
            'liveUrl': form.live_url,
            'repoUrl': form.repo_url,
            'techStack': list(form.tech_stack),
            'features': list(form.features),
        }
    }


def file_part(field_name, upload):
    """requests-style multipart tuple for an uploaded werkzeug FileStorage"""
    upload.stream.seek(0)
    return (field_name, (secure_filename(upload.filename) or field_name, upload.stream, upload.mimetype or 'application/octet-stream'))


class SubmissionGuard:
    """At most one save in flight per form instance"""

    def __init__(self):
        self._active = set()
        self._lock = threading.Lock()

    def busy(self, key):
        with self._lock:
            return key in self._active

    @contextmanager
    def hold(self, key):
        with self._lock:
            if key in self._active:
                raise SubmissionInProgress(key)
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)


__all__ = [
    'DeltaFormatError',
    'EditorSession',
    'SubmissionGuard',
    'SubmissionInProgress',
    'build_blog_payload',
    'build_project_payload',
    'editor_from_submission',
    'file_part',
]
