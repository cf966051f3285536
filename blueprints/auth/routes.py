"""
Auth Routes - Login, logout and session status
"""

from flask import render_template, redirect, url_for, request, flash, g, jsonify, current_app
from utils.api_client import forget_api_cookies, remember_api_cookies
from . import auth_bp


def _landing_url():
    """Post-login destination: a local ``next`` path, otherwise home"""
    target = request.form.get('next') or request.args.get('next') or ''
    if target.startswith('/') and not target.startswith('//'):
        return target
    return url_for('pages.index')


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Admin login through the external API"""
    if request.method == 'GET' and g.auth.is_authenticated:
        return redirect(url_for('pages.index'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip()
        password = request.form.get('password', '')

        if not email or not password:
            flash('Email and password are required.', 'error')
            return render_template('auth/login.html', email=email), 400

        result = g.auth.login(email, password)
        if not result:
            flash(result.error, 'error')
            current_app.logger.info(f"Failed login for {email}")
            return render_template('auth/login.html', email=email), 401

        remember_api_cookies(g.auth.api)
        flash('Login successful', 'success')
        current_app.logger.info(f"User logged in: {email}")
        return redirect(_landing_url())

    return render_template('auth/login.html')


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Logout current user; the local session ends even if the API call fails"""
    g.auth.logout()
    forget_api_cookies()
    flash('Logged out successfully', 'success')
    return redirect(url_for('auth.login'))


@auth_bp.route('/auth/session')
def session_status():
    """Resolved session state for client-side navigation"""
    response = jsonify(g.auth.to_dict())
    response.headers['Cache-Control'] = 'no-store'
    return response
