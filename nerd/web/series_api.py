"""
Flask Blueprint for series endpoints.
"""

import logging
import queue

from flask import Blueprint, current_app, jsonify, request

from ..core.errors import StoreError, ValidationError
from ..core.nets import list_networks
from ..core.series import process_update
from .nets_api import (
    MAX_NETS_PAGE,
    SUBMIT_TIMEOUT,
    get_param_store,
    get_point_store,
    get_training_service,
    int_arg,
)

logger = logging.getLogger(__name__)

series_bp = Blueprint('series', __name__, url_prefix='/api/v1/series')


MAX_POINTS_PAGE = 500


@series_bp.route('', methods=['GET'])
def list_series():
    try:
        series = get_point_store().list_series()
    except StoreError:
        logger.exception("failed to get list of series")
        return jsonify({'error': 'Error getting list of series, see logs for more info'}), 500
    return jsonify(series)


@series_bp.route('/process', methods=['POST'])
def process():
    """
    Ingest a metrics update event.

    Request body:
    {
        "type": "com.qvantel.nerd.metricsupdate",
        "source": "shop-frontend",
        "subject": "sales",
        "data": {
            "series_id": "shop-sales",
            "err_margin": 0.5,
            "labels": {"region": "north"},
            "stage": "production",
            "points": [
                {"inputs": {"visits": 120, "price": 9.5}, "outputs": {"sold": 14}, "timestamp": 1600000000}
            ]
        }
    }
    """
    event = request.get_json(silent=True)
    if not isinstance(event, dict):
        return jsonify({'error': 'Wrong format'}), 400
    try:
        queued = process_update(event, get_point_store(), get_training_service(),
                                current_app.config['NERD_CONFIG'].ml, timeout=SUBMIT_TIMEOUT)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except StoreError:
        logger.exception("failed to process metrics update")
        return jsonify({'error': 'Error processing point, see logs for more info'}), 500
    except queue.Full:
        return jsonify({'error': 'Training queue is full, try again later'}), 503
    return jsonify({'training_queued': queued}), 202


@series_bp.route('/<series_id>', methods=['DELETE'])
def delete_series(series_id: str):
    store = get_point_store()
    try:
        if not store.exists(series_id):
            return jsonify({'error': f'Series with id {series_id} could not be found'}), 404
        store.delete_series(series_id)
    except StoreError:
        logger.exception("failed to delete series %s", series_id)
        return jsonify({'error': 'Error deleting series, see logs for more info'}), 500
    return jsonify({'success': True})


@series_bp.route('/<series_id>/nets', methods=['GET'])
def list_series_nets(series_id: str):
    """List the networks trained on a series."""
    try:
        offset = int_arg('offset', 0)
        limit = min(int_arg('limit', 10), MAX_NETS_PAGE)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    try:
        nets, cursor = list_networks(get_param_store(), offset, limit, f'{series_id}-*')
    except StoreError:
        logger.exception("failed to get list of nets for %s", series_id)
        return jsonify({'error': 'Error getting list of nets, see logs for more info'}), 500
    return jsonify({'last': cursor == 0, 'next': cursor, 'results': nets})


@series_bp.route('/<series_id>/points', methods=['GET'])
def list_points(series_id: str):
    """
    Most recent points of a series.

    Query params:
        limit: How many points to fetch (default 10, at most 500)
    """
    try:
        limit = min(int_arg('limit', 10), MAX_POINTS_PAGE)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400

    store = get_point_store()
    try:
        if not store.exists(series_id):
            return jsonify({'error': f'Series with id {series_id} could not be found'}), 404
        points = store.get_last_n(series_id, None, limit)
    except StoreError:
        logger.exception("failed to fetch points of %s", series_id)
        return jsonify({'error': 'Error fetching points, see logs for more info'}), 500
    return jsonify([p.to_dict() for p in points])
