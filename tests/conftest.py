"""
Shared fixtures for the nerd test suite.
"""

import numpy as np
import pytest

from nerd.config import Config, MLParams, SeriesParams
from nerd.core.jobs import TrainRequest
from nerd.core.params import NetworkParams, network_id
from nerd.stores import FileParamStore, FilePointStore, Point


GOLDEN_WEIGHTS = [
    [0.4, 0.7, -0.2, 0.6, -0.4, 0.3],
    [-0.3, 0.5, 0.1],
]


def make_points(n, seed=0, flat=False):
    """Points where sum = a + 2b and diff = a - b; flat is constant when requested."""
    rng = np.random.default_rng(seed)
    points = []
    for i in range(n):
        a, b = rng.uniform(-1, 1, size=2)
        values = {'a': float(a), 'b': float(b), 'sum': float(a + 2 * b), 'diff': float(a - b)}
        if flat:
            values['flat'] = 3.0
        points.append(Point(values=values, timestamp=1_600_000_000 + i, labels={'stage': 'test'}))
    return points


class FakeService:
    """Collects submitted training requests instead of training."""

    def __init__(self):
        self.requests = []
        self.timeouts = []

    def submit(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)


@pytest.fixture
def golden_params():
    """2-2-1 network with fixed weights and no normalization statistics."""
    return NetworkParams(
        topology=[2, 2, 1],
        inputs=['subs', 'events'],
        outputs=['size'],
        weights=[np.array(w, dtype=np.float64) for w in GOLDEN_WEIGHTS],
        activation_func='bipolar-sigmoid',
        learning_rate=0.25,
    )


@pytest.fixture
def golden_id():
    return network_id('golden', ['subs', 'events'], ['size'], 'mlp')


@pytest.fixture
def points():
    return make_points(40)


@pytest.fixture
def ml_params():
    """Small search settings so every test trains in well under a second."""
    return MLParams(
        generations=2,
        variations=3,
        max_epoch=15,
        min_hidden_layers=1,
        max_hidden_layers=1,
        hidden_layers=1,
        test_set=0.25,
        tolerance=0.01,
    )


@pytest.fixture
def request_ab():
    return TrainRequest(series_id='shop', inputs=['a', 'b'], outputs=['diff', 'sum'], err_margin=0.5)


@pytest.fixture
def param_store(tmp_path):
    return FileParamStore(str(tmp_path / 'params'))


@pytest.fixture
def point_store(tmp_path):
    return FilePointStore(str(tmp_path / 'points'))


@pytest.fixture
def fake_service():
    return FakeService()


@pytest.fixture
def config(tmp_path, ml_params):
    ml_params.store_params = {'path': str(tmp_path / 'params')}
    return Config(
        app_version='test',
        ml=ml_params,
        series=SeriesParams(store_params={'path': str(tmp_path / 'points')}),
    )
