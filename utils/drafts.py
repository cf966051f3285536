"""
Drafts Module - Durable snapshots of in-progress create forms

DraftStore keeps one JSON snapshot per (owner, key) in the database.
DraftAutosaver is the cancellable fixed-interval task that feeds it: each tick
reads the latest form values through a snapshot callable and persists them.
"""

import logging
import threading

from extensions import db
from models import Draft

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0
BLOG_DRAFT_KEY = 'blog:draft'
PROJECT_DRAFT_KEY = 'project:draft'

BLOG_DRAFT_FIELDS = ('title', 'excerpt', 'tags', 'content', 'coverImage')
PROJECT_DRAFT_FIELDS = ('title', 'description', 'liveUrl', 'repoUrl', 'techStack', 'features',
                        'content', 'thumbnail', 'demoImages')


def clean_snapshot(values, fields):
    """Keep only the form fields a draft is allowed to carry"""
    if not isinstance(values, dict):
        return {}
    return {name: values[name] for name in fields if name in values}


class DraftStore:
    """Key/value draft storage backed by Flask-SQLAlchemy (needs an app context)"""

    def __init__(self, owner_id):
        self.owner_id = str(owner_id)

    def find(self, key):
        """The stored Draft row, or None"""
        return Draft.query.filter_by(owner_id=self.owner_id, key=key).first()

    def get(self, key):
        row = self.find(key)
        return dict(row.payload or {}) if row else None

    def save(self, key, payload):
        row = self.find(key)
        if row is None:
            row = Draft(owner_id=self.owner_id, key=key, payload=dict(payload))
            db.session.add(row)
        else:
            row.payload = dict(payload)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return row

    def clear(self, key):
        row = self.find(key)
        if row is None:
            return False
        db.session.delete(row)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return True


class DraftAutosaver:
    """Fixed-interval draft snapshot task tied to one editing session.

    The browser editor autosaves through the draft endpoint on its own timer.
    This is the same schedule for editing sessions driven from Python code
    rather than a browser, writing to the same DraftStore at the same interval.

    Only forms in ``create`` mode autosave. ``tick`` performs one snapshot and
    can be called directly; ``start`` schedules ticks on a timer thread until
    ``cancel`` is called. When ``app`` is given, every tick runs inside its
    application context.
    """

    def __init__(self, store, key, snapshot, mode='create', interval=DEFAULT_INTERVAL, app=None):
        self.store = store
        self.key = key
        self.snapshot = snapshot
        self.mode = mode
        self.interval = interval
        self.app = app
        self._timer = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def enabled(self):
        return self.mode == 'create'

    @property
    def running(self):
        return self._timer is not None and not self._cancelled.is_set()

    def tick(self):
        if not self.enabled or self._cancelled.is_set():
            return False
        values = self.snapshot()
        if self.app is not None:
            with self.app.app_context():
                self.store.save(self.key, values)
        else:
            self.store.save(self.key, values)
        return True

    def _run(self):
        try:
            self.tick()
        except Exception as e:
            logger.error(f"Draft autosave for {self.key!r} failed: {e}")
        self._schedule()

    def _schedule(self):
        with self._lock:
            if self._cancelled.is_set():
                return
            self._timer = threading.Timer(self.interval, self._run)
            self._timer.daemon = True
            self._timer.start()

    def start(self):
        if not self.enabled:
            return False
        self._cancelled.clear()
        self._schedule()
        return True

    def cancel(self):
        with self._lock:
            self._cancelled.set()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def clear(self):
        """Explicit "clear draft" action; ticking continues if still running"""
        if self.app is not None:
            with self.app.app_context():
                return self.store.clear(self.key)
        return self.store.clear(self.key)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()
        return False


__all__ = [
    'BLOG_DRAFT_FIELDS',
    'BLOG_DRAFT_KEY',
    'DEFAULT_INTERVAL',
    'DraftAutosaver',
    'DraftStore',
    'PROJECT_DRAFT_FIELDS',
    'PROJECT_DRAFT_KEY',
    'clean_snapshot',
]
