import pytest

from utils.api_client import ApiError, ApiTransportError
from utils.schemas import SessionIdentity
from utils.session_state import AuthState, AuthStatus, GateDecision, dashboard_gate, show_admin_links

ADMIN = SessionIdentity(id='1', name='Admin', email='admin@example.com', role='ADMIN')
EDITOR = SessionIdentity(id='2', name='Editor', email='editor@example.com', role='USER')


class StubAPI:
    def __init__(self, lookups=None, login=None, logout_error=None):
        self.lookups = list(lookups or [])
        self.login_result = login
        self.logout_error = logout_error
        self.logout_calls = 0

    def current_user(self, cancel_token=None):
        result = self.lookups.pop(0)
        if callable(result):
            result = result(cancel_token)
        if isinstance(result, Exception):
            raise result
        return result

    def login(self, email, password):
        if isinstance(self.login_result, Exception):
            raise self.login_result
        return self.login_result

    def logout(self):
        self.logout_calls += 1
        if self.logout_error:
            raise self.logout_error


def test_new_state_is_loading_and_never_redirects():
    state = AuthState(StubAPI())
    assert state.status == AuthStatus.UNRESOLVED
    assert state.loading
    assert dashboard_gate(state) == GateDecision.SKELETON


def test_gate_during_lookup_shows_skeleton():
    decisions = []
    state = AuthState(None)
    state.api = StubAPI(lookups=[lambda token: decisions.append(dashboard_gate(state)) or ADMIN])
    state.start()
    assert decisions == [GateDecision.SKELETON]
    assert dashboard_gate(state) == GateDecision.RENDER


@pytest.mark.parametrize('lookup, status', [
    (ADMIN, AuthStatus.AUTHENTICATED),
    (None, AuthStatus.ANONYMOUS),
    (ApiError('Unauthorized', status=401), AuthStatus.ANONYMOUS),
    (ApiTransportError('API unreachable'), AuthStatus.ANONYMOUS),
    (RuntimeError('boom'), AuthStatus.ANONYMOUS),
])
def test_start_settles_state(lookup, status):
    state = AuthState(StubAPI(lookups=[lookup]))
    assert state.start() == status
    assert not state.loading


def test_gate_redirects_anonymous_and_non_admin():
    anonymous = AuthState(StubAPI(lookups=[None]))
    anonymous.start()
    assert dashboard_gate(anonymous) == GateDecision.REDIRECT_LOGIN

    editor = AuthState(StubAPI(lookups=[EDITOR]))
    editor.start()
    assert editor.is_authenticated
    assert not editor.is_admin
    assert dashboard_gate(editor) == GateDecision.REDIRECT_LOGIN
    assert not show_admin_links(editor)


def test_admin_links_only_for_admin():
    state = AuthState(StubAPI(lookups=[ADMIN]))
    state.start()
    assert show_admin_links(state)
    assert state.as_login_user().is_admin
    assert state.to_dict() == {
        'status': 'authenticated',
        'user': {'id': '1', 'name': 'Admin', 'email': 'admin@example.com', 'role': 'ADMIN'},
        'isAdmin': True,
    }


def test_cancelled_lookup_result_is_discarded():
    state = AuthState(None)

    def teardown_mid_flight(token):
        state.cancel()
        return ADMIN

    state.api = StubAPI(lookups=[teardown_mid_flight])
    state.start()
    assert state.status == AuthStatus.ANONYMOUS
    assert state.user is None


def test_new_refresh_supersedes_pending_one():
    state = AuthState(None)
    second = SessionIdentity(id='9', name='Second', role='ADMIN')

    def refresh_again(token):
        state.refresh()
        assert token.cancelled
        return ADMIN

    state.api = StubAPI(lookups=[refresh_again, second])
    state.start()
    assert state.status == AuthStatus.AUTHENTICATED
    assert state.user.id == '9'


def test_login_success_authenticates():
    state = AuthState(StubAPI(login=ADMIN))
    result = state.login('admin@example.com', 'secret')
    assert result
    assert result.user == ADMIN
    assert state.status == AuthStatus.AUTHENTICATED


@pytest.mark.parametrize('error, message', [
    (ApiError('Wrong password', status=401, payload={'message': 'Wrong password'}), 'Wrong password'),
    (ApiError('Something went wrong', status=401), 'Invalid credentials'),
    (ApiTransportError('API unreachable'), 'Something went wrong : API unreachable'),
])
def test_login_failure_is_anonymous_with_message(error, message):
    state = AuthState(StubAPI(login=error))
    result = state.login('admin@example.com', 'nope')
    assert not result
    assert result.error == message
    assert state.status == AuthStatus.ANONYMOUS
    assert not state.loading


def test_logout_is_anonymous_even_when_api_fails():
    api = StubAPI(lookups=[ADMIN], logout_error=ApiTransportError('API unreachable'))
    state = AuthState(api)
    state.start()
    state.logout()
    assert api.logout_calls == 1
    assert state.status == AuthStatus.ANONYMOUS
    assert state.user is None


def test_listeners_follow_transitions_until_unsubscribed():
    seen = []
    state = AuthState(StubAPI(lookups=[ADMIN, None]))
    unsubscribe = state.subscribe(lambda s: seen.append(s.status))
    state.start()
    unsubscribe()
    state.refresh()
    assert seen == [AuthStatus.LOADING, AuthStatus.AUTHENTICATED]
