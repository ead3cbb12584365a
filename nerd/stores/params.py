"""
Storage for trained network parameters.

FileParamStore writes one JSON document per network id. Writes take a file
lock so the consumer thread and API handlers never interleave on one file.
"""

import fnmatch
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from filelock import FileLock

from ..core.errors import StoreError
from ..core.params import NetworkParams

logger = logging.getLogger(__name__)


PARAMS_SUFFIX = '.json'


class ParamStore(ABC):
    """Interface every parameter store implements."""

    @abstractmethod
    def load(self, net_id: str) -> Optional[NetworkParams]:
        """Parameters stored under net_id, None if there are none."""

    @abstractmethod
    def save(self, net_id: str, params: NetworkParams):
        pass

    @abstractmethod
    def delete(self, net_id: str):
        """Remove net_id; deleting a missing id is not an error."""

    @abstractmethod
    def list(self, offset: int, limit: int, pattern: str = '*') -> Tuple[List[str], int]:
        """
        Page through the stored ids matching a glob pattern.

        Returns:
            (ids, next_offset) where next_offset is 0 once there is nothing left
        """


class FileParamStore(ParamStore):
    """Parameter store on the local filesystem."""

    def __init__(self, path: str):
        self.base_path = Path(path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_lock(self, file_path: Path) -> FileLock:
        """Get a file lock for atomic operations."""
        return FileLock(str(file_path) + '.lock')

    def _file(self, net_id: str) -> Path:
        return self.base_path / (net_id + PARAMS_SUFFIX)

    def load(self, net_id: str) -> Optional[NetworkParams]:
        path = self._file(net_id)
        if not path.exists():
            return None
        try:
            with self._get_lock(path):
                data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            raise StoreError(f"could not read parameters {net_id}: {e}") from e
        return NetworkParams.from_dict(data)

    def save(self, net_id: str, params: NetworkParams):
        path = self._file(net_id)
        try:
            with self._get_lock(path):
                path.write_text(json.dumps(params.to_dict()))
        except OSError as e:
            raise StoreError(f"could not save parameters {net_id}: {e}") from e
        logger.debug("saved parameters %s", net_id)

    def delete(self, net_id: str):
        path = self._file(net_id)
        try:
            with self._get_lock(path):
                path.unlink(missing_ok=True)
            Path(str(path) + '.lock').unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"could not delete parameters {net_id}: {e}") from e

    def list(self, offset: int, limit: int, pattern: str = '*') -> Tuple[List[str], int]:
        ids = sorted(
            path.name[:-len(PARAMS_SUFFIX)]
            for path in self.base_path.glob('*' + PARAMS_SUFFIX)
        )
        ids = [i for i in ids if len(i.split('-')) >= 4 and fnmatch.fnmatchcase(i, pattern)]
        page = ids[offset:offset + limit]
        next_offset = offset + limit if offset + limit < len(ids) else 0
        return page, next_offset
