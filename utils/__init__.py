"""
Utils Package - Content pipeline, API access and session state
"""

from .delta import Delta, DeltaContent, RawContent, parse_content
from .converter import (
    content_markup,
    content_to_html,
    plain_text,
    reading_time,
    render_html,
    word_count
)
from .api_client import (
    ApiError,
    ApiTransportError,
    PortfolioAPI,
    get_api
)
from .session_state import (
    AuthState,
    AuthStatus,
    GateDecision,
    dashboard_gate,
    show_admin_links
)
from .editor import EditorSession, SubmissionGuard, SubmissionInProgress
from .drafts import DraftAutosaver, DraftStore
from .cache import PageCache, cached_fetch, revalidate_path
from .decorators import admin_required
from .helpers import allowed_file, check_image, total_pages

__all__ = [
    # Content
    'Delta',
    'DeltaContent',
    'RawContent',
    'parse_content',
    'content_markup',
    'content_to_html',
    'plain_text',
    'reading_time',
    'render_html',
    'word_count',

    # API
    'ApiError',
    'ApiTransportError',
    'PortfolioAPI',
    'get_api',

    # Session
    'AuthState',
    'AuthStatus',
    'GateDecision',
    'dashboard_gate',
    'show_admin_links',

    # Editor & drafts
    'EditorSession',
    'SubmissionGuard',
    'SubmissionInProgress',
    'DraftAutosaver',
    'DraftStore',

    # Cache
    'PageCache',
    'cached_fetch',
    'revalidate_path',

    # Decorators & helpers
    'admin_required',
    'allowed_file',
    'check_image',
    'total_pages'
]
