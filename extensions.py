"""
Extensions Module - Flask extension instances shared across the app

db backs the dashboard draft store. login_manager exposes the identity the
external API resolved for the current request (see app.register_hooks); no
user id is kept in the Flask session itself.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager

db = SQLAlchemy()

login_manager = LoginManager()
login_manager.login_view = 'auth.login'
login_manager.login_message = 'Please login to access this page.'
login_manager.login_message_category = 'error'
# Identity is re-resolved from the API cookie on every request
login_manager.session_protection = None

__all__ = ['db', 'login_manager']
