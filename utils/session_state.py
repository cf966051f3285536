"""
Session State Module - Authentication state shared by navigation and dashboard views

AuthState is created once per application load (one per request in this
server) and injected into every consumer through ``g.auth``. It moves through

    unresolved -> loading -> authenticated(user) | anonymous

Identity lookups are cancellable; a cancelled or superseded lookup never
changes the state.
"""

import logging
import threading
from enum import Enum

from flask_login import AnonymousUserMixin, UserMixin

from .api_client import ApiError, ApiTransportError, CancelledRequest

logger = logging.getLogger(__name__)

ADMIN_ROLE = 'ADMIN'


class AuthStatus(str, Enum):
    UNRESOLVED = 'unresolved'
    LOADING = 'loading'
    AUTHENTICATED = 'authenticated'
    ANONYMOUS = 'anonymous'


class GateDecision(str, Enum):
    RENDER = 'render'
    SKELETON = 'skeleton'
    REDIRECT_LOGIN = 'redirect_login'


class CancelToken:
    """Cancellation flag handed to an in-flight request"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()


class SessionUser(UserMixin):
    """Flask-Login view of a session identity"""

    def __init__(self, identity, admin_role=ADMIN_ROLE):
        self.identity = identity
        self.admin_role = admin_role

    def get_id(self):
        return self.identity.id

    @property
    def name(self):
        return self.identity.name or self.identity.email or 'Admin'

    @property
    def email(self):
        return self.identity.email

    @property
    def role(self):
        return self.identity.role

    @property
    def is_admin(self):
        return self.identity.role == self.admin_role


class AnonymousUser(AnonymousUserMixin):
    name = None
    role = None
    is_admin = False


class LoginResult:
    def __init__(self, ok, user=None, error=None):
        self.ok = ok
        self.user = user
        self.error = error

    def __bool__(self):
        return self.ok


class AuthState:
    """Explicit authentication state object with a defined lifecycle"""

    def __init__(self, api, admin_role=ADMIN_ROLE):
        self.api = api
        self.admin_role = admin_role
        self.status = AuthStatus.UNRESOLVED
        self.user = None
        self._pending = None
        self._lock = threading.Lock()
        self._listeners = []

    def subscribe(self, listener):
        """Register ``listener(state)``; returns a callable that unsubscribes"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _transition(self, status, user=None):
        self.status = status
        self.user = user
        for listener in list(self._listeners):
            listener(self)

    @property
    def loading(self):
        return self.status in (AuthStatus.UNRESOLVED, AuthStatus.LOADING)

    @property
    def is_authenticated(self):
        return self.status == AuthStatus.AUTHENTICATED and self.user is not None

    @property
    def is_admin(self):
        return self.is_authenticated and self.user.role == self.admin_role

    def start(self):
        """Resolve the session identity once per application load"""
        return self.refresh()

    def refresh(self, cancel_token=None):
        """Look up the current identity; supersedes any lookup still in flight"""
        token = cancel_token or CancelToken()
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._pending = token
        self._transition(AuthStatus.LOADING)

        try:
            user = self.api.current_user(cancel_token=token)
        except CancelledRequest:
            return self.status
        except ApiError as e:
            if token.cancelled:
                return self.status
            logger.info(f"Session check failed, treating visitor as anonymous: {e.message}")
            self._settle(token, AuthStatus.ANONYMOUS)
            return self.status
        except Exception as e:
            if token.cancelled:
                return self.status
            logger.error(f"Unexpected error during session check: {e}")
            self._settle(token, AuthStatus.ANONYMOUS)
            return self.status

        if token.cancelled:
            return self.status
        if user is None:
            self._settle(token, AuthStatus.ANONYMOUS)
        else:
            self._settle(token, AuthStatus.AUTHENTICATED, user)
        return self.status

    def _settle(self, token, status, user=None):
        with self._lock:
            if self._pending is not token:
                return
            self._pending = None
        self._transition(status, user)

    def cancel(self):
        """Tear down: abandon any in-flight lookup without applying its result"""
        with self._lock:
            pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
            if self.loading:
                self._transition(AuthStatus.ANONYMOUS)

    def login(self, email, password):
        """Exchange credentials; never leaves the state in ``loading``"""
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
        self._transition(AuthStatus.LOADING)
        try:
            user = self.api.login(email, password)
        except ApiTransportError as e:
            logger.error(f"Login request failed: {e.message}")
            self._transition(AuthStatus.ANONYMOUS)
            return LoginResult(False, error=f"Something went wrong : {e.message}")
        except ApiError as e:
            logger.info(f"Login rejected: {e.message}")
            self._transition(AuthStatus.ANONYMOUS)
            return LoginResult(False, error=e.payload.get('message') or 'Invalid credentials')
        except Exception as e:
            logger.error(f"Unexpected error during login: {e}")
            self._transition(AuthStatus.ANONYMOUS)
            return LoginResult(False, error=f"Something went wrong : {e}")
        self._transition(AuthStatus.AUTHENTICATED, user)
        return LoginResult(True, user=user)

    def logout(self):
        """Best-effort server-side logout; always ends anonymous"""
        try:
            self.api.logout()
        except Exception as e:
            logger.warning(f"Logout request failed, clearing local session anyway: {e}")
        finally:
            self.cancel()
            self._transition(AuthStatus.ANONYMOUS)

    def as_login_user(self):
        if self.is_authenticated:
            return SessionUser(self.user, self.admin_role)
        return None

    def to_dict(self):
        user = self.user.model_dump() if self.is_authenticated else None
        return {
            'status': self.status.value,
            'user': user,
            'isAdmin': self.is_admin,
        }


def dashboard_gate(state):
    """What a dashboard view should do for the given auth state"""
    if state.loading:
        return GateDecision.SKELETON
    if not state.is_authenticated or not state.is_admin:
        return GateDecision.REDIRECT_LOGIN
    return GateDecision.RENDER


def show_admin_links(state):
    return state.is_admin


__all__ = [
    'ADMIN_ROLE',
    'AnonymousUser',
    'AuthState',
    'AuthStatus',
    'CancelToken',
    'GateDecision',
    'LoginResult',
    'SessionUser',
    'dashboard_gate',
    'show_admin_links',
]
