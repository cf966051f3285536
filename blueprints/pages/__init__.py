"""
Pages Blueprint - Public static pages
Handles: Home, About, Contact, cache revalidation
"""

from flask import Blueprint

pages_bp = Blueprint('pages', __name__, url_prefix='')

from . import routes
