"""
Flask web application for nerd.

Serves the REST API under /api/v1 and a small welcome page.
"""

import os
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, render_template

from ..config import Config
from ..stores import new_param_store, new_point_store
from .nets_api import nets_bp
from .series_api import series_bp


health_bp = Blueprint('health', __name__, url_prefix='/api/v1/health')


@health_bp.route('/startup')
def startup():
    """Report that the API is up."""
    return jsonify({'result': 'ok', 'message': 'The API is up'})


def create_app(config: Optional[Config] = None, param_store=None, point_store=None, service=None) -> Flask:
    """
    Create and configure the Flask application.

    Stores default to the ones named in config. The training service is
    only needed by the endpoints that queue training.
    """
    config = config if config is not None else Config.from_env()
    template_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

    app = Flask(__name__, template_folder=template_dir)
    app.config['NERD_CONFIG'] = config
    app.config['PARAM_STORE'] = param_store if param_store is not None else new_param_store(
        config.ml.store_type, config.ml.store_params)
    app.config['POINT_STORE'] = point_store if point_store is not None else new_point_store(
        config.series.store_type, config.series.store_params)
    app.config['TRAINING_SERVICE'] = service

    @app.route('/')
    def index():
        """Welcome page."""
        return render_template('index.html', version=current_app.config['NERD_CONFIG'].app_version)

    app.register_blueprint(health_bp)
    app.register_blueprint(nets_bp)
    app.register_blueprint(series_bp)

    return app
