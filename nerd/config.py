"""
Service configuration, read from environment variables.

Every setting has a default so the service starts with an empty
environment; malformed values raise ValidationError at startup.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from .core.errors import ValidationError


@dataclass
class LoggerParams:
    level: str = 'INFO'
    service_name: str = 'nerd'
    artifact_id: str = 'nerd'


@dataclass
class MLParams:
    """
    Hyperparameter search and training settings.

    Attributes:
        generations: Generations the genetic search runs for
        variations: Chromosomes per population
        max_epoch: Hard cap on training epochs per network
        min_hidden_layers: Lower bound of the initial hidden layer count
        max_hidden_layers: Width of the initial hidden layer count range
        hidden_layers: Hidden layer count used to size the required point count
        test_set: Fraction of points held out for accuracy, in [0, 1)
        tolerance: Relative error change under which training stops
        workers: Processes used to search outputs in parallel (1 = inline)
    """
    generations: int = 5
    variations: int = 6
    max_epoch: int = 1000
    min_hidden_layers: int = 1
    max_hidden_layers: int = 5
    hidden_layers: int = 1
    test_set: float = 0.4
    tolerance: float = 0.1
    workers: int = 1
    store_type: str = 'file'
    store_params: Dict[str, Any] = field(default_factory=lambda: {'path': '.'})

    def __post_init__(self):
        if not 0 <= self.test_set < 1:
            raise ValidationError(f"test set fraction must be in [0, 1), got {self.test_set}")
        if self.min_hidden_layers < 0 or self.max_hidden_layers < 0:
            raise ValidationError("hidden layer bounds must not be negative")
        if self.variations < 2:
            raise ValidationError(f"at least 2 variations are needed, got {self.variations}")
        if self.workers < 1:
            raise ValidationError(f"at least 1 worker is needed, got {self.workers}")


@dataclass
class SeriesParams:
    store_type: str = 'file'
    store_params: Dict[str, Any] = field(default_factory=lambda: {'path': '.'})


@dataclass
class Config:
    app_version: str = 'unknown'
    logger: LoggerParams = field(default_factory=LoggerParams)
    ml: MLParams = field(default_factory=MLParams)
    series: SeriesParams = field(default_factory=SeriesParams)
    queue_size: int = 10
    host: str = '0.0.0.0'
    port: int = 5400

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """Build the configuration from environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str, default, parse: Callable = str):
            raw = env.get(name)
            if raw is None or raw == '':
                return default
            try:
                return parse(raw)
            except ValueError as e:
                raise ValidationError(f"invalid value {raw!r} for {name}: {e}") from e

        ml = MLParams(
            generations=get('ML_GENERATIONS', 5, int),
            variations=get('ML_VARIATIONS', 6, int),
            max_epoch=get('ML_MAX_EPOCH', 1000, int),
            min_hidden_layers=get('ML_MIN_HLAYERS', 1, int),
            max_hidden_layers=get('ML_MAX_HLAYERS', 5, int),
            hidden_layers=get('ML_HLAYERS', 1, int),
            test_set=get('ML_TEST_SET', 0.4, float),
            tolerance=get('ML_TOLERANCE', 0.1, float),
            workers=get('ML_WORKERS', 1, int),
            store_type=get('ML_STORE_TYPE', 'file'),
            store_params=get('ML_STORE_PARAMS', {'path': '.'}, _parse_store_params),
        )
        series = SeriesParams(
            store_type=get('SERIES_STORE_TYPE', 'file'),
            store_params=get('SERIES_STORE_PARAMS', {'path': '.'}, _parse_store_params),
        )
        service_name = get('SERVICE_NAME', 'nerd')
        return cls(
            app_version=get('VERSION', 'unknown'),
            logger=LoggerParams(
                level=get('LOG_LEVEL', 'INFO').upper(),
                service_name=service_name,
                artifact_id=get('ARTIFACT_ID', service_name),
            ),
            ml=ml,
            series=series,
            queue_size=get('TRAIN_QUEUE_SIZE', 10, int),
            host=get('HOST', '0.0.0.0'),
            port=get('PORT', 5400, int),
        )


def _parse_store_params(raw: str) -> Dict[str, Any]:
    params = json.loads(raw)
    if not isinstance(params, dict):
        raise ValueError("expected a JSON object")
    return params
