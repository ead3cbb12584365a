"""
Flask Blueprint for network endpoints.

Provides endpoints for:
- Listing trained networks
- Requesting training for a series
- Evaluating inputs with a trained network
- Deleting networks
"""

import logging
import queue

from flask import Blueprint, current_app, jsonify, request

from ..core.errors import InputCountMismatch, StoreError, ValidationError
from ..core.jobs import TrainRequest
from ..core.nets import list_networks, load_network

logger = logging.getLogger(__name__)

nets_bp = Blueprint('nets', __name__, url_prefix='/api/v1/nets')


MAX_NETS_PAGE = 50
SUBMIT_TIMEOUT = 5.0


def get_param_store():
    """Get the ParamStore from app config."""
    return current_app.config['PARAM_STORE']


def get_point_store():
    """Get the PointStore from app config."""
    return current_app.config['POINT_STORE']


def get_training_service():
    """Get the TrainingService from app config."""
    return current_app.config['TRAINING_SERVICE']


def int_arg(name: str, default: int) -> int:
    raw = request.args.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a valid integer") from None
    if value < 0:
        raise ValidationError(f"{name} must not be negative")
    return value


@nets_bp.route('', methods=['GET'])
def list_nets():
    """
    List trained networks.

    Query params:
        offset: Where to start (default 0)
        limit: Page size (default 10, at most 50)

    Returns:
        {"last": bool, "next": int, "results": [brief, ...]}
    """
    try:
        offset = int_arg('offset', 0)
        limit = min(int_arg('limit', 10), MAX_NETS_PAGE)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400

    try:
        nets, cursor = list_networks(get_param_store(), offset, limit)
    except StoreError:
        logger.exception("failed to get list of nets")
        return jsonify({'error': 'Error getting list of nets, see logs for more info'}), 500
    return jsonify({'last': cursor == 0, 'next': cursor, 'results': nets})


@nets_bp.route('', methods=['POST'])
def train():
    """
    Request training for a series.

    Request body:
    {
        "series_id": "shop-sales",
        "inputs": ["visits", "price"],
        "outputs": ["sold"],
        "err_margin": 0.5
    }
    """
    data = request.get_json(silent=True)
    try:
        train_request = TrainRequest.from_dict(data)
    except ValidationError as e:
        logger.debug("rejected training request: %s", e)
        return jsonify({'error': str(e)}), 400

    try:
        exists = get_point_store().exists(train_request.series_id)
    except StoreError:
        logger.exception("failed to check if series %s exists", train_request.series_id)
        return jsonify({'error': 'Error processing training request, see logs for more info'}), 500
    if not exists:
        return jsonify({'error': f'Series with id {train_request.series_id} could not be found'}), 404

    train_request.inputs.sort()
    train_request.outputs.sort()
    try:
        get_training_service().submit(train_request, timeout=SUBMIT_TIMEOUT)
    except queue.Full:
        return jsonify({'error': 'Training queue is full, try again later'}), 503
    return jsonify({'message': 'Training request accepted'}), 202


@nets_bp.route('/<net_id>', methods=['DELETE'])
def delete_net(net_id: str):
    try:
        get_param_store().delete(net_id)
    except StoreError:
        logger.exception("failed to delete net %s", net_id)
        return jsonify({'error': 'Error deleting net, see logs for more info'}), 500
    return jsonify({'success': True})


@nets_bp.route('/<net_id>/evaluate', methods=['POST'])
def evaluate(net_id: str):
    """
    Evaluate inputs with a trained network.

    Request body: {"<input label>": <value>, ...}

    Returns:
        {"<output label>": <value>, ...}
    """
    inputs = request.get_json(silent=True)
    if not isinstance(inputs, dict) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in inputs.values()
    ):
        return jsonify({'error': 'Wrong format'}), 400

    try:
        network = load_network(get_param_store(), net_id)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except StoreError:
        logger.exception("failed to load net %s", net_id)
        return jsonify({'error': 'Error loading net, see logs for more info'}), 500
    if network is None:
        return jsonify({'error': f'Net with id {net_id} could not be found'}), 404

    try:
        outputs = network.evaluate(inputs)
    except InputCountMismatch as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(outputs)
