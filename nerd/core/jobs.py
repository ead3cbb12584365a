"""
Background training of networks.

A single consumer thread pulls TrainRequests from a bounded queue and, for
every requested output, runs a genetic search over the latest points of the
series and saves the winning network's parameters. Per-output searches are
independent, so with more than one worker they run in a process pool.
"""

import logging
import queue
import threading
from dataclasses import asdict, dataclass
from enum import Enum
from multiprocessing import Pool
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..evolution.population import Population
from .errors import DataError, ValidationError
from .params import label_hash, required_points

logger = logging.getLogger(__name__)


class TrainingState(str, Enum):
    IDLE = 'idle'
    FETCHING_POINTS = 'fetching_points'
    BUILDING_POPULATION = 'building_population'
    SEARCHING = 'searching'
    PERSISTING = 'persisting'


@dataclass
class TrainRequest:
    """
    Ask for one network per output label of a series.

    Inputs and outputs are expected sorted; the service keeps the order it
    is given.
    """
    series_id: str
    inputs: List[str]
    outputs: List[str]
    err_margin: float
    required: int = 0

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'TrainRequest':
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise ValidationError("train request must be a JSON object")
        try:
            request = cls(
                series_id=str(data['series_id']),
                inputs=[str(label) for label in data['inputs']],
                outputs=[str(label) for label in data['outputs']],
                err_margin=float(data['err_margin']),
                required=int(data.get('required', 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"malformed train request: {e}") from e
        if not request.series_id or not request.inputs or not request.outputs:
            raise ValidationError("train request needs a series, inputs and outputs")
        return request


def search_worker(args: Tuple) -> Dict:
    """
    Search the best network for a single output.

    This function runs in a separate process when the service has several
    workers. All inputs must be picklable.

    Args:
        args: Tuple of (request, output, points, ml_params, seed)

    Returns:
        Dict with status and output, plus id and params or error.
    """
    request, output, points, ml_params, seed = args
    try:
        population = Population(ml_params, np.random.default_rng(seed))
        network = population.optimal(request, [output], points)
        return {
            'status': 'completed',
            'output': output,
            'id': network.id,
            'params': network.params,
        }
    except (ValidationError, DataError) as e:
        return {
            'status': 'failed',
            'output': output,
            'error': str(e),
        }


class TrainingService:
    """
    Queue of training requests served by one consumer thread.

    Args:
        param_store: Where winning network parameters are saved
        point_store: Where series points are read from
        ml_params: MLParams for the search and training
        queue_size: Capacity of the request queue; submit blocks when full
        rng: Generator seeding every search, fresh entropy if None
    """

    def __init__(self, param_store, point_store, ml_params, queue_size: int = 10,
                 rng: Optional[np.random.Generator] = None):
        self.param_store = param_store
        self.point_store = point_store
        self.ml_params = ml_params
        self.rng = rng if rng is not None else np.random.default_rng()
        self.requests: queue.Queue = queue.Queue(maxsize=queue_size)
        self.state = TrainingState.IDLE
        self._thread: Optional[threading.Thread] = None

    def _set_state(self, state: TrainingState):
        logger.debug("training service %s -> %s", self.state.value, state.value)
        self.state = state

    def submit(self, request: TrainRequest, timeout: Optional[float] = None):
        """Queue a request, blocking while the queue is full."""
        self.requests.put(request, timeout=timeout)
        logger.info("queued training request for %s (outputs %s)", request.series_id, request.outputs)

    def start(self) -> threading.Thread:
        """Start the consumer thread."""
        if self._thread is None:
            self._thread = threading.Thread(target=self.run, name='nerd-trainer', daemon=True)
            self._thread.start()
        return self._thread

    def close(self, timeout: Optional[float] = None):
        """Stop after every request queued so far has been handled."""
        self.requests.put(None)
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run(self):
        """Consume requests until the queue is closed."""
        logger.info("training service started")
        while True:
            request = self.requests.get()
            try:
                if request is None:
                    break
                self.process(request)
            except Exception:
                logger.exception("training request for %s aborted", request.series_id)
            finally:
                self._set_state(TrainingState.IDLE)
                self.requests.task_done()
        logger.info("training service stopped")

    def process(self, request: TrainRequest) -> List[str]:
        """
        Search and save one network per output of the request.

        Returns:
            Ids of the networks that were saved.

        Raises:
            StoreError: if the points could not be fetched or a network
                could not be saved; the remaining outputs are skipped.
        """
        group = f"{request.series_id}-{label_hash(request.inputs)}"
        logger.info("training %s for %d outputs", group, len(request.outputs))

        self._set_state(TrainingState.FETCHING_POINTS)
        limit = request.required or required_points(len(request.inputs), 1, self.ml_params.hidden_layers)
        points = self.point_store.get_last_n(request.series_id, None, limit)

        if self.ml_params.workers > 1:
            results = self._search_parallel(request, points)
        else:
            results = (self._search(request, output, points) for output in request.outputs)

        saved = []
        for result in results:
            if result['status'] != 'completed':
                logger.error("search for %s of %s failed: %s", result['output'], group, result['error'])
                continue
            self._set_state(TrainingState.PERSISTING)
            self.param_store.save(result['id'], result['params'])
            logger.info("saved %s (accuracy %.4f)", result['id'], result['params'].accuracy)
            saved.append(result['id'])
        return saved

    def _seed(self) -> int:
        return int(self.rng.integers(2**32))

    def _search(self, request: TrainRequest, output: str, points: Sequence) -> Dict:
        self._set_state(TrainingState.BUILDING_POPULATION)
        try:
            population = Population(self.ml_params, np.random.default_rng(self._seed()))
            self._set_state(TrainingState.SEARCHING)
            network = population.optimal(request, [output], points)
        except (ValidationError, DataError) as e:
            return {'status': 'failed', 'output': output, 'error': str(e)}
        return {'status': 'completed', 'output': output, 'id': network.id, 'params': network.params}

    def _search_parallel(self, request: TrainRequest, points: Sequence) -> List[Dict]:
        self._set_state(TrainingState.SEARCHING)
        tasks = [
            (request, output, list(points), self.ml_params, self._seed())
            for output in request.outputs
        ]
        with Pool(processes=min(self.ml_params.workers, len(tasks))) as pool:
            return pool.map(search_worker, tasks)
