"""
Ingestion of metrics updates.

A metrics update carries points whose values are split into inputs and
outputs. They are stored as plain points, and the first update that takes
a series past the number of points a network needs queues a training
request for it.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..stores.points import Point
from .errors import ValidationError
from .jobs import TrainRequest
from .params import required_points

logger = logging.getLogger(__name__)


METRICS_UPDATE_EVENT = 'com.qvantel.nerd.metricsupdate'
STAGES = ('test', 'production')


@dataclass
class CategorizedPoint:
    inputs: Dict[str, float]
    outputs: Dict[str, float]
    timestamp: int

    @classmethod
    def from_dict(cls, data: Dict) -> 'CategorizedPoint':
        return cls(
            inputs={str(k): float(v) for k, v in data['inputs'].items()},
            outputs={str(k): float(v) for k, v in data['outputs'].items()},
            timestamp=int(data['timestamp']),
        )


@dataclass
class MetricsUpdate:
    """
    Snapshots of related values that may predict each other.

    Attributes:
        series_id: Series the points belong to
        err_margin: How far a prediction may be off and still count as right
        labels: Labels attached to every stored point
        points: The snapshots
        stage: test or production
    """
    series_id: str
    err_margin: float
    points: List[CategorizedPoint]
    stage: str
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> 'MetricsUpdate':
        if not isinstance(data, dict):
            raise ValidationError("metrics update must be a JSON object")
        try:
            update = cls(
                series_id=str(data['series_id']),
                err_margin=float(data['err_margin']),
                points=[CategorizedPoint.from_dict(p) for p in data['points']],
                stage=str(data['stage']),
                labels={str(k): str(v) for k, v in (data.get('labels') or {}).items()},
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"malformed metrics update: {e}") from e
        if update.stage not in STAGES:
            raise ValidationError(
                f"the stage of a metrics update must be test or production, got {update.stage!r}"
            )
        if not update.points:
            raise ValidationError("metrics update has no points")
        return update


def process_update(event: Dict, point_store, service, ml_params, timeout: Optional[float] = None) -> bool:
    """
    Store the points of a metrics update event and queue training if due.

    Args:
        event: Dict with type, source, subject and data (the update)
        point_store: PointStore the points are added to
        service: TrainingService requests are submitted to
        ml_params: MLParams, hidden_layers sizes the required point count
        timeout: Seconds to wait for room in the training queue, None blocks

    Returns:
        True if a training request was queued.
    """
    event_type = event.get('type')
    if event_type != METRICS_UPDATE_EVENT:
        logger.warning("received event with unsupported type %s from %s", event_type, event.get('source'))
        raise ValidationError(f"unsupported event type {event_type!r}")
    update = MetricsUpdate.from_dict(event.get('data'))

    inputs = sorted(update.points[0].inputs)
    outputs = sorted(update.points[0].outputs)
    count = point_store.get_count(update.series_id)

    labels = dict(update.labels)
    labels['subject'] = str(event.get('subject', ''))
    labels['stage'] = update.stage
    for cp in update.points:
        values = dict(cp.inputs)
        values.update(cp.outputs)
        point_store.add_point(update.series_id, Point(values=values, timestamp=cp.timestamp, labels=dict(labels)))

    # One output per network
    required = required_points(len(inputs), 1, ml_params.hidden_layers)
    total = count + len(update.points)
    logger.debug("got %d points for %s, %d required for training", total, update.series_id, required)
    if count < required <= total:
        service.submit(TrainRequest(
            series_id=update.series_id,
            inputs=inputs,
            outputs=outputs,
            err_margin=update.err_margin,
            required=required,
        ), timeout=timeout)
        return True
    return False
