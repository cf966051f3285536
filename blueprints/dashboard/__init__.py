"""
Dashboard Blueprint - Admin content management
Handles: Overview, blog and project create/update/delete, draft autosave endpoints
"""

from flask import Blueprint

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')

from . import routes
