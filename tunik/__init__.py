"""Flask application factory."""
import logging
import os
import traceback

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from werkzeug.routing import IntegerConverter

from tunik.database import init_db
from tunik.utils.parsing import MAX_INT


class RecordIdConverter(IntegerConverter):
    """`<id:name>` URL segment: a positive integer that fits an id column, else 404."""

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault('min', 1)
        kwargs.setdefault('max', MAX_INT)
        super().__init__(map, *args, **kwargs)


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)
    app.url_map.converters['id'] = RecordIdConverter

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus metrics instrumentation
    from tunik.blueprints.metrics import setup_metrics_instrumentation, record_domain_error
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* headers from the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    # Initialize database
    init_db(app)

    # Error Handlers
    from tunik.exceptions import TunikError

    @app.errorhandler(TunikError)
    def handle_tunik_error(error):
        """Render application exceptions as the JSON envelope."""
        if error.status_code >= 500:
            app.logger.error(f"TunikError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"TunikError [{error.status_code}] {error.category}: {error.message}")
        record_domain_error(error.category)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'ok': False,
            'msg': error.description,
            'error': error.name
        }), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({
            'ok': False,
            'msg': 'Error en el servidor',
            'error': 'InternalError'
        }), 500

    # Register blueprints
    from tunik.blueprints.main import main_bp
    from tunik.blueprints.metrics import metrics_bp
    from tunik.blueprints.orders import orders_bp
    from tunik.blueprints.quotes import quotes_bp
    from tunik.blueprints.appointments import appointments_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(appointments_bp)

    return app
