# cleaner.py
"""
Strips non-geometry objects (lights, cameras, helpers, curves, ...)
from the scene and hands the remaining geometry to the merger.
"""

import logging
from enum import Enum

from .core import ObjectKind, emit

logger = logging.getLogger(__name__)


class Classification(Enum):
    DELETE = 0   # scene clutter, removed
    KEEP = 1     # renderable geometry, returned to the caller
    IGNORE = 2   # neither; left in the scene, not returned


DELETE_KINDS = frozenset({
    ObjectKind.LIGHT,
    ObjectKind.CAMERA,
    ObjectKind.HELPER,
    ObjectKind.SPACE_WARP,
    ObjectKind.CURVE,
    ObjectKind.NURBS,
    ObjectKind.DUMMY,
    ObjectKind.POINT,
    ObjectKind.SUB_ENTITY,
    # closed polygon meshes are always MESH, so every SHAPE is an open spline/text
    ObjectKind.SHAPE,
})

GEOMETRY_KINDS = frozenset({ObjectKind.MESH, ObjectKind.GEOMETRY})


def classify_kind(kind):
    """Three-way classification of an object kind."""
    if kind in DELETE_KINDS:
        return Classification.DELETE
    if kind in GEOMETRY_KINDS:
        return Classification.KEEP
    return Classification.IGNORE


class CleanResult:
    """Outcome of a clean pass."""

    def __init__(self):
        self.deleted = []
        self.kept = []
        self.ignored = []
        self.error = ""

    @property
    def success(self):
        return not self.error

    def __repr__(self):
        return (f"CleanResult(deleted={len(self.deleted)}, kept={len(self.kept)}, "
                f"ignored={len(self.ignored)})")


def clean_scene(host, objects=None, on_progress=None):
    """
    Delete unwanted objects and return the geometry that remains.

    Args:
        host (SceneHost): Scene access.
        objects (list, optional): Objects to classify. Defaults to every
            object in the scene.
        on_progress (callable, optional): Receives ProgressEvent instances.

    Returns:
        CleanResult: ``kept`` holds exactly the retained geometry. If the
        delete call fails, ``deleted`` is empty and ``error`` says why.
    """
    if objects is None:
        objects = list(host.all_objects())

    result = CleanResult()
    to_delete = []
    total = len(objects)

    for obj in objects:
        verdict = classify_kind(host.object_kind(obj))
        if verdict is Classification.DELETE:
            to_delete.append(obj)
        elif verdict is Classification.KEEP:
            result.kept.append(obj)
        else:
            result.ignored.append(obj)

    emit(on_progress, "clean", total, total,
         f"Deleting {len(to_delete)} of {total} objects")

    if to_delete:
        names = [host.object_name(obj) for obj in to_delete]
        outcome = host.delete_objects(to_delete)
        if outcome:
            result.deleted = to_delete
            logger.debug(f"Deleted: {', '.join(names)}")
        else:
            result.error = outcome.reason
            logger.error(f"Failed to delete {len(to_delete)} objects: {outcome.reason}")

    if result.ignored:
        logger.info(f"Left {len(result.ignored)} unclassified objects untouched")

    logger.info(f"Clean pass: deleted {len(result.deleted)}, "
                f"kept {len(result.kept)} geometry objects")
    return result
