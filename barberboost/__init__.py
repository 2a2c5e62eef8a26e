import logging

from flask import Flask, jsonify
from flask_cors import CORS

from barberboost.config.config import Config
from barberboost.config.env import init_env
from barberboost.extensions import db, s3
from barberboost.services.registry import init_services
from barberboost.controllers.pipeline_controller import pipeline_bp
from barberboost.controllers.clover_controller import clover_bp
from barberboost.controllers.report_email_controller import report_email_bp
from barberboost.controllers.cron_controller import cron_bp

# Register models with SQLAlchemy metadata
from barberboost.models import employee_commission, employee_sales_data, merchant, report  # noqa: F401
from barberboost.models import report_pipeline_status, secure_credential, settings  # noqa: F401


def create_app(config_class=Config, **service_overrides):
    # Initialize environment variables
    init_env(config_class)
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Initialize extensions AFTER app creation
    db.init_app(app)
    s3.init_app(app)

    CORS(app, resources={
        r"/functions/*": {
            "origins": "*",
            "methods": ["POST", "OPTIONS"],
            "allow_headers": ["authorization", "x-client-info", "apikey", "content-type"],
            "send_wildcard": True,
        }
    })

    # Pipeline components are wired once and shared by every request
    init_services(app, **service_overrides)

    # Register Blueprints (Routes)
    app.register_blueprint(pipeline_bp)
    app.register_blueprint(clover_bp)
    app.register_blueprint(report_email_bp)
    app.register_blueprint(cron_bp)

    @app.route('/')
    def welcome():
        return jsonify({'message': 'Welcome to the Barber Boost API'})

    return app
