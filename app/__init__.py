"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect
from app.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection
    CSRFProtect(app)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'Sessionen har gått ut. Ladda om sidan.'}), 400

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache for the catalog snapshot
    from app.services.cache_service import init_cache
    init_cache(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    # Initialize database
    init_db(app)

    from app.middleware import load_user

    @app.before_request
    def before_request_handler():
        """Load user context for each request."""
        load_user()

    # Error Handlers
    from app.exceptions import GlasmastroError

    @app.errorhandler(GlasmastroError)
    def handle_app_error(error):
        """Handle custom application exceptions."""
        app.logger.warning(f"GlasmastroError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Hittades inte.'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'status': 'error', 'message': 'Metoden är inte tillåten.'}), 405

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internt serverfel.'}), 500

    # Register blueprints
    from app.blueprints.auth import auth_bp
    from app.blueprints.customers import customers_bp
    from app.blueprints.catalog import catalog_bp
    from app.blueprints.work_orders import work_orders_bp
    from app.blueprints.users import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(work_orders_bp)
    app.register_blueprint(users_bp)

    # Register CLI commands
    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
