"""
Dispatch over network kinds, plus the store-facing helpers the API uses.
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from .errors import ValidationError
from .network import MLP
from .params import NetworkKind, NetworkParams, id_to_kind, parse_kind

logger = logging.getLogger(__name__)


def new_network(net_id: str, kind, inputs: List[str], outputs: List[str], hidden_layers: int,
                activation_func: str, learning_rate: float,
                rng: Optional[np.random.Generator] = None) -> MLP:
    """Create an untrained network of the given kind."""
    kind = parse_kind(kind.value if isinstance(kind, NetworkKind) else kind)
    if kind is NetworkKind.MLP:
        return MLP.new(net_id, inputs, outputs, hidden_layers, activation_func, learning_rate, rng)
    raise ValidationError(f"unsupported network kind {kind.value!r}")


def network_from_params(net_id: str, params: NetworkParams,
                        rng: Optional[np.random.Generator] = None) -> MLP:
    """Rebuild a stored network; the kind comes from the id suffix."""
    kind = id_to_kind(net_id)
    if kind is NetworkKind.MLP:
        return MLP(net_id, params, rng)
    raise ValidationError(f"unsupported network kind {kind.value!r}")


def load_network(store, net_id: str) -> Optional[MLP]:
    """Load a network from a parameter store, None when it does not exist."""
    id_to_kind(net_id)
    params = store.load(net_id)
    if params is None:
        return None
    return network_from_params(net_id, params)


def list_networks(store, offset: int, limit: int, pattern: str = '*') -> Tuple[List[Dict], int]:
    """
    Brief descriptions of stored networks.

    Returns:
        (briefs, next_offset) where next_offset is 0 once the listing is done
    """
    ids, cursor = store.list(offset, limit, pattern)
    briefs = []
    for net_id in ids:
        try:
            id_to_kind(net_id)
        except ValidationError as e:
            logger.warning("skipping stored parameters %s: %s", net_id, e)
            continue
        params = store.load(net_id)
        if params is None:
            continue
        briefs.append(params.brief(net_id))
    return briefs, cursor
