import uuid
from datetime import datetime, timezone
from time import perf_counter

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from flask_cors import CORS

from App.config import load_config
from App.logging_config import configure_logging
from App.services import OptimizationService


def register_api_v2(app):
    """Register API v2 blueprint for frontend integration"""
    from App.views.api_v2 import register_api_v2 as _register
    _register(app)


def create_app(overrides=None):
    # Load environment variables from .env if present
    load_dotenv()
    app = Flask(__name__)
    load_config(app, overrides or {})

    configure_logging(app)
    app.logger.info(
        'Flask application configured',
        extra={
            'event': 'app_boot',
            'environment': app.config.get('ENV'),
            'debug': app.debug,
            'service': app.config.get('SERVICE_NAME'),
            'model_variant': app.config.get('MODEL_VARIANT'),
        },
    )

    @app.before_request
    def _structured_request_logging() -> None:
        g.request_timer = perf_counter()
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        app.logger.info(
            'Incoming request',
            extra={
                'event': 'request_started',
                'request_id': g.request_id,
                'method': request.method,
                'path': request.path,
                'remote_addr': request.remote_addr,
            },
        )

    @app.after_request
    def _structured_response_logging(response):
        duration_ms = None
        if hasattr(g, 'request_timer'):
            duration_ms = round((perf_counter() - g.request_timer) * 1000, 2)
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers['X-Request-ID'] = request_id
        app.logger.info(
            'Completed request',
            extra={
                'event': 'request_completed',
                'request_id': request_id,
                'method': request.method,
                'path': request.path,
                'status_code': response.status_code,
                'duration_ms': duration_ms,
            },
        )
        return response

    @app.teardown_request
    def _structured_request_teardown(exc):
        if exc is not None:
            app.logger.error(
                'Unhandled request exception',
                exc_info=exc,
                extra={
                    'event': 'request_exception',
                    'request_id': getattr(g, 'request_id', None),
                    'method': getattr(request, 'method', None),
                    'path': getattr(request, 'path', None),
                },
            )

    CORS(app, resources={
        r"/api/*": {
            "origins": app.config['CORS_ORIGINS'],
            "methods": ["GET", "POST", "PUT", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Request-ID"],
        }
    })

    # One solver handle per process, owned by the service
    app.extensions['optimization_service'] = OptimizationService.from_config(app.config)

    register_api_v2(app)

    @app.get("/healthcheck")
    def healthcheck():
        checks = {}
        now = datetime.now(timezone.utc).isoformat()
        checks['app'] = {'ok': True, 'time': now}

        service = app.extensions['optimization_service']
        solver_ok = service.solver_available
        checks['solver'] = {'ok': solver_ok}
        if not solver_ok:
            checks['solver']['error'] = 'LP/MIP engine not available; solving disabled'

        checks['config'] = {'ok': bool(app.config.get('SECRET_KEY')), 'model_variant': app.config['MODEL_VARIANT']}

        overall_ok = all(check['ok'] for check in checks.values())
        status_code = 200 if overall_ok else 503
        app.logger.info(
            'Healthcheck completed',
            extra={
                'event': 'healthcheck_completed',
                'overall_ok': overall_ok,
                'checks': checks,
                'request_id': getattr(g, 'request_id', None),
            },
        )
        return jsonify(status='ok' if overall_ok else 'fail', checks=checks), status_code

    return app
