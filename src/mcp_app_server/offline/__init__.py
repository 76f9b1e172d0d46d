"""Offline editing of persisted configuration documents."""
from .transform import (
    EDIT_SCRIPTS,
    Subtree,
    TransformError,
    XmlTransform,
    XmlTransformBuilder,
    edit_script,
)
from .client import OfflineManagementClient
from . import scripts  # noqa: F401  (registers the edit scripts)

__all__ = [
    "EDIT_SCRIPTS",
    "Subtree",
    "TransformError",
    "XmlTransform",
    "XmlTransformBuilder",
    "edit_script",
    "OfflineManagementClient",
]
