"""
Time-series point storage.

FilePointStore keeps one directory per series and one JSON file per point.
It reads whole series to answer queries, which is fine for tests and local
runs but not meant for production volumes.

Storage structure:
    <path>/
    └── nerd-<series>/
        ├── <point id>      # flattened point JSON
        └── ...
"""

import hashlib
import json
import logging
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.errors import StoreError, ValidationError

logger = logging.getLogger(__name__)


SERIES_PREFIX = 'nerd-'
TIMESTAMP_KEY = '@timestamp'


@dataclass
class Point:
    """A single measurement: string labels, numeric values and a unix timestamp."""
    values: Dict[str, float]
    timestamp: int
    labels: Dict[str, str] = field(default_factory=dict)

    def id(self) -> str:
        """Deduplication key: sha256 of the timestamp and the label values in key order."""
        digest = hashlib.sha256(str(self.timestamp).encode('utf-8'))
        for key in sorted(self.labels):
            digest.update(self.labels[key].encode('utf-8'))
        return digest.hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        """Flattened form: labels, values and @timestamp side by side."""
        data: Dict[str, Any] = {TIMESTAMP_KEY: self.timestamp}
        data.update(self.labels)
        data.update(self.values)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Point':
        labels, values = {}, {}
        timestamp = 0
        for key, value in data.items():
            if key == TIMESTAMP_KEY:
                timestamp = int(value)
            elif isinstance(value, str):
                labels[key] = value
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                values[key] = float(value)
        return cls(values=values, timestamp=timestamp, labels=labels)


def matches(point: Point, labels: Optional[Dict[str, str]]) -> bool:
    if not labels:
        return True
    return all(point.labels.get(k) == v for k, v in labels.items())


class PointStore(ABC):
    """Interface every point store implements."""

    @abstractmethod
    def add_point(self, name: str, point: Point):
        """Store a point, creating the series if needed."""

    @abstractmethod
    def add_series(self, name: str, retention_days: int = 90):
        """Create an empty series."""

    @abstractmethod
    def delete_series(self, name: str):
        """Remove a series and all its points."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def get_count(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Number of points in a series, 0 when it does not exist."""

    @abstractmethod
    def get_last_n(self, name: str, labels: Optional[Dict[str, str]], n: int) -> List[Point]:
        """Up to n points, most recent first."""

    @abstractmethod
    def list_series(self) -> List[Dict[str, Any]]:
        """Brief description ({name, count}) of every series."""

    def get_latest(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[Point]:
        points = self.get_last_n(name, labels, 1)
        return points[0] if points else None


def clean_name(name: str) -> str:
    return name.lower().replace(':', '_')


class FilePointStore(PointStore):
    """Point store on the local filesystem."""

    def __init__(self, path: str):
        self.base_path = Path(path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _series_dir(self, name: str) -> Path:
        return self.base_path / (SERIES_PREFIX + clean_name(name))

    def _read_series(self, name: str) -> List[Point]:
        series_dir = self._series_dir(name)
        if not series_dir.is_dir():
            raise StoreError(f"series {name!r} does not exist")
        points = []
        try:
            for path in series_dir.iterdir():
                points.append(Point.from_dict(json.loads(path.read_text())))
        except (OSError, ValueError) as e:
            raise StoreError(f"could not read series {name!r}: {e}") from e
        return points

    def add_point(self, name: str, point: Point):
        series_dir = self._series_dir(name)
        if not series_dir.is_dir():
            self.add_series(name)
        try:
            (series_dir / point.id()).write_text(json.dumps(point.to_dict()))
        except OSError as e:
            raise StoreError(f"could not store point in {name!r}: {e}") from e

    def add_series(self, name: str, retention_days: int = 90):
        try:
            self._series_dir(name).mkdir(parents=True, exist_ok=True)
            logger.debug("created series %s under %s", name, self.base_path)
        except OSError as e:
            raise StoreError(f"could not create series {name!r}: {e}") from e

    def delete_series(self, name: str):
        try:
            shutil.rmtree(self._series_dir(name))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(f"could not delete series {name!r}: {e}") from e

    def exists(self, name: str) -> bool:
        return self._series_dir(name).is_dir()

    def get_count(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        if not self.exists(name):
            return 0
        if not labels:
            return sum(1 for _ in self._series_dir(name).iterdir())
        return sum(1 for p in self._read_series(name) if matches(p, labels))

    def get_last_n(self, name: str, labels: Optional[Dict[str, str]], n: int) -> List[Point]:
        points = [p for p in self._read_series(name) if matches(p, labels)]
        points.sort(key=lambda p: p.timestamp, reverse=True)
        return points[:n]

    def list_series(self) -> List[Dict[str, Any]]:
        series = []
        for path in sorted(self.base_path.iterdir()):
            if not path.is_dir() or not path.name.startswith(SERIES_PREFIX):
                continue
            name = path.name[len(SERIES_PREFIX):]
            series.append({'name': name, 'count': self.get_count(name)})
        return series


def load_test_set(path: str) -> List[Point]:
    """
    Read whitespace separated numeric rows as points.

    Row i becomes a point with timestamp i and values value-0 .. value-k.
    """
    points = []
    try:
        lines = Path(path).read_text().splitlines()
    except OSError as e:
        raise StoreError(f"could not read test set {path}: {e}") from e
    for i, line in enumerate(lines):
        fields = line.split()
        if not fields:
            continue
        try:
            values = {f'value-{j}': float(v) for j, v in enumerate(fields)}
        except ValueError as e:
            raise ValidationError(f"line {i + 1} of {path}: {e}") from e
        points.append(Point(values=values, timestamp=i))
    return points
