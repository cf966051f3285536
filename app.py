"""
Portfolio - Main Application Entry Point
Application Factory Pattern for a server-rendered portfolio front end

This module initializes the Flask application with all necessary extensions,
configurations, and middleware. Content lives behind the external portfolio API;
all actual route handling is delegated to blueprints.
"""

import os
from datetime import datetime
from flask import Flask, g, request, redirect, flash
from config import get_config
from extensions import db, login_manager
from utils.api_client import get_api
from utils.cache import PageCache
from utils.converter import content_markup, count_words, plain_text, reading_time
from utils.editor import SubmissionGuard
from utils.session_state import AnonymousUser, AuthState, show_admin_links

# Import all blueprints
from blueprints.auth import auth_bp
from blueprints.pages import pages_bp
from blueprints.dashboard import dashboard_bp
from blueprints.portfolio import portfolio_bp


def create_app(config_name=None, api_factory=None):
    """
    Application Factory Pattern
    Creates and configures Flask application instance

    Args:
        config_name (str): Configuration environment name (optional)
        api_factory (callable): Builds the API client from the stored API
            cookies (optional, defaults to PortfolioAPI)

    Returns:
        Flask: Configured Flask application instance
    """

    app = Flask(__name__)

    # Load configuration
    conf = get_config(config_name)
    app.config.from_object(conf)

    # Initialize extensions with app
    initialize_extensions(app, api_factory)

    # Register Jinja filters
    register_filters(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register request/response hooks
    register_hooks(app)

    # Health check route
    @app.route('/health')
    def health_check():
        return {'status': 'ok', 'message': 'Portfolio front end is running'}, 200

    return app


def initialize_extensions(app, api_factory=None):
    """Initialize Flask extensions with the app instance"""
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.anonymous_user = AnonymousUser

    app.extensions['page_cache'] = PageCache(ttl=app.config.get('PAGE_CACHE_TTL', 60))
    app.extensions['submission_guard'] = SubmissionGuard()
    if api_factory is not None:
        app.extensions['portfolio_api_factory'] = api_factory

    # Create tables if they don't exist
    with app.app_context():
        try:
            from sqlalchemy import text
            import models  # noqa: F401
            db.create_all()
            # Verify connection
            db.session.execute(text('SELECT 1'))
            app.logger.info("✓ Draft database initialized successfully")
        except Exception as e:
            app.logger.error(f"✗ Draft database initialization failed: {str(e)}")


def register_filters(app):
    """Register Jinja filters used by content templates"""
    app.jinja_env.filters['render_content'] = content_markup
    app.jinja_env.filters['excerpt'] = lambda raw, limit=None: plain_text(
        raw, limit or app.config.get('EXCERPT_LENGTH', 160))
    app.jinja_env.filters['reading_time'] = lambda raw: reading_time(count_words(plain_text(raw)))
    app.logger.info('✓ Registered Jinja filters: render_content, excerpt, reading_time')


def register_blueprints(app):
    """Register all application blueprints"""
    app.register_blueprint(auth_bp)
    app.register_blueprint(pages_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(portfolio_bp)


def register_error_handlers(app):
    """Register custom error handlers"""

    @app.errorhandler(404)
    def page_not_found(e):
        from flask import render_template
        return render_template('404.html'), 404

    @app.errorhandler(500)
    def internal_server_error(e):
        from flask import render_template
        app.logger.error(f"Server Error: {str(e)}")
        return render_template('500.html'), 500

    @app.errorhandler(413)
    def file_too_large(e):
        flash('Upload is too large.', 'error')
        return redirect(request.url), 303


def register_hooks(app):
    """Register request/response hooks and context processors"""

    @login_manager.request_loader
    def load_session_user(_request):
        auth = g.get('auth')
        return auth.as_login_user() if auth is not None else None

    @app.before_request
    def resolve_session():
        """Resolve the API session identity once for this request"""
        if request.endpoint in ('static', 'health_check'):
            return
        g.auth = AuthState(get_api(), admin_role=app.config.get('ADMIN_ROLE', 'ADMIN'))
        g.auth.start()

    @app.teardown_request
    def release_session(exc):
        auth = g.pop('auth', None)
        if auth is not None:
            auth.cancel()

    @app.context_processor
    def inject_global_vars():
        """Navigation and layout values for all templates"""
        auth = g.get('auth')
        return {
            'auth_state': auth,
            'auth_loading': auth.loading if auth is not None else True,
            'show_admin_links': show_admin_links(auth) if auth is not None else False,
            'current_year': datetime.now().year,
            'autosave_interval_ms': int(app.config.get('AUTOSAVE_INTERVAL_SECONDS', 5) * 1000),
        }

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        response.headers['Content-Security-Policy'] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "img-src 'self' data: blob: https:; "
            "connect-src 'self'; "
            "frame-ancestors 'none';"
        )
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response


# Create app instance for gunicorn
app = create_app()

if __name__ == '__main__':
    # Get environment
    env = os.environ.get('FLASK_ENV', 'development')

    # Create app
    app = create_app(env)

    # Run development server
    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 3000)),
        debug=(env == 'development')
    )
