"""
Decorators Module - Authentication and authorization decorators
"""

from functools import wraps
from flask import g, redirect, url_for, flash, render_template, current_app
from .session_state import GateDecision, dashboard_gate


def admin_required(f):
    """Decorator gating dashboard views on the resolved session identity.

    While the session check is unresolved a neutral placeholder is rendered and
    no redirect happens. Anonymous visitors go through Flask-Login's
    unauthorized flow; authenticated non-admin identities are sent to login too.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        decision = dashboard_gate(g.auth)
        if decision == GateDecision.SKELETON:
            return render_template('dashboard/loading.html'), 200
        if decision == GateDecision.REDIRECT_LOGIN:
            if not g.auth.is_authenticated:
                return current_app.login_manager.unauthorized()
            flash('Admin access required.', 'error')
            return redirect(url_for('auth.login'))
        return f(*args, **kwargs)
    return decorated_function
