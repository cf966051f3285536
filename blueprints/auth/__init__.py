"""
Auth Blueprint - Authentication and session state
Handles: Login, Logout, Session status
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__, url_prefix='')

from . import routes
