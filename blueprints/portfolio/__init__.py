"""
Portfolio Blueprint - Public blog and project views
Handles: Blog list/detail, Project list/detail
"""

from flask import Blueprint

portfolio_bp = Blueprint('portfolio', __name__, url_prefix='')

from . import routes
