"""
Parameter and point stores.

Only the filesystem backends ship here; other backends plug in by
implementing ParamStore or PointStore and registering a factory below.
"""

from typing import Dict

from ..core.errors import ValidationError
from .params import FileParamStore, ParamStore
from .points import FilePointStore, Point, PointStore, load_test_set


PARAM_STORES = {
    'file': FileParamStore,
}

POINT_STORES = {
    'file': FilePointStore,
}


def _store_path(params: Dict) -> str:
    path = params.get('path', params.get('Path'))
    if not path:
        raise ValidationError("file stores need a 'path' parameter")
    return path


def new_param_store(store_type: str, params: Dict) -> ParamStore:
    """Build the parameter store named by store_type."""
    if store_type not in PARAM_STORES:
        raise ValidationError(f"unsupported parameter store type {store_type!r}")
    return PARAM_STORES[store_type](_store_path(params))


def new_point_store(store_type: str, params: Dict) -> PointStore:
    """Build the point store named by store_type."""
    if store_type not in POINT_STORES:
        raise ValidationError(f"unsupported point store type {store_type!r}")
    return POINT_STORES[store_type](_store_path(params))


__all__ = [
    'FileParamStore',
    'FilePointStore',
    'ParamStore',
    'Point',
    'PointStore',
    'load_test_set',
    'new_param_store',
    'new_point_store',
]
