"""
GDPR Compliance Checker Application Factory
"""
import logging
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from config import config

db = SQLAlchemy()
cors = CORS()

EXTENSION_KEY = 'gdpr_checker'


def create_app(config_name='default', analyzer=None, executor=None, overrides=None):
    """Build the Flask app.

    ``analyzer`` and ``executor`` replace the IO Intelligence client and the
    background thread pool (tests pass fakes); ``overrides`` patches config keys.
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    prefix = app.config['API_PREFIX'].rstrip('/')
    cors.init_app(
        app,
        resources={rf'{prefix}/*': {'origins': app.config['CLIENT_URL']}},
        supports_credentials=True,
    )

    from gdpr_checker.services.analysis_service import AnalysisOrchestrator
    from gdpr_checker.services.openai_service import build_analyzer
    from gdpr_checker.storage import build_stores

    if analyzer is None:
        if not app.config.get('IO_INTELLIGENCE_API_KEY'):
            app.logger.warning(
                'IO_INTELLIGENCE_API_KEY not set - analysis requests will fail until it is configured'
            )
        analyzer = build_analyzer(app.config)

    documents, reports = build_stores(app, db)
    app.extensions[EXTENSION_KEY] = AnalysisOrchestrator(
        documents=documents,
        reports=reports,
        analyzer=analyzer,
        executor=executor,
        max_workers=app.config['ANALYSIS_WORKERS'],
    )

    # Register blueprints
    from gdpr_checker.api import api_bp
    app.register_blueprint(api_bp, url_prefix=prefix or None)

    register_error_handlers(app)
    return app


def register_error_handlers(app):
    from gdpr_checker.errors import ComplianceCheckerError

    @app.errorhandler(ComplianceCheckerError)
    def handle_checker_error(e):
        if e.status_code >= 500:
            app.logger.error('%s: %s', e.error, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return jsonify({
            'error': 'File too large',
            'message': 'File size must be less than 10MB',
        }), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({
            'error': 'Route not found',
            'message': f'The requested route {request.path} does not exist.',
        }), 404

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({'error': e.name, 'message': e.description}), e.code
        app.logger.exception('Unhandled error on %s %s', request.method, request.path)
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'Something went wrong on the server',
        }), 500
