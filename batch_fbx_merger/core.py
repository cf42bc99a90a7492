# core.py
"""
Shared contracts for the batch import, clean and merge stages.

Nothing in this module touches bpy. The stages talk to the host
application through a scene host object (see SceneHost) and report
back through HostResult values and ProgressEvent callbacks.
"""

import gc
import time
import logging
from enum import Enum

logger = logging.getLogger(__name__)


# --- Custom Exceptions ---

class BatchMergeError(Exception):
    """Base exception for batch import/merge operations."""
    pass


class ValidationError(BatchMergeError):
    """Raised when input validation fails."""
    pass


class CapabilityError(BatchMergeError):
    """Raised when the scene host is missing routines a run depends on."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(
            f"Scene host is missing required routines: {', '.join(self.missing)}"
        )


class ProcessingError(BatchMergeError):
    """Raised when a stage fails unexpectedly."""
    pass


# --- Object kinds ---

class ObjectKind(Enum):
    """Kind tag of a scene object, as seen by the cleaner and merger."""
    MESH = "mesh"
    GEOMETRY = "geometry"     # renderable, but not a polygon mesh yet
    LIGHT = "light"
    CAMERA = "camera"
    HELPER = "helper"
    SPACE_WARP = "space_warp"
    CURVE = "curve"
    NURBS = "nurbs"
    DUMMY = "dummy"
    POINT = "point"
    SUB_ENTITY = "sub_entity"
    SHAPE = "shape"
    OTHER = "other"


# Blender Object.type -> kind
OBJECT_TYPE_KINDS = {
    "MESH": ObjectKind.MESH,
    "META": ObjectKind.GEOMETRY,
    "CURVE": ObjectKind.CURVE,
    "CURVES": ObjectKind.CURVE,
    "SURFACE": ObjectKind.NURBS,
    "FONT": ObjectKind.SHAPE,
    "LIGHT": ObjectKind.LIGHT,
    "LIGHT_PROBE": ObjectKind.LIGHT,
    "CAMERA": ObjectKind.CAMERA,
    "SPEAKER": ObjectKind.HELPER,
    "LATTICE": ObjectKind.SPACE_WARP,
    "EMPTY": ObjectKind.DUMMY,
    "POINTCLOUD": ObjectKind.POINT,
}


def kind_from_type(type_name):
    """Map a Blender object type string to an ObjectKind.

    Armatures, volumes and grease pencil objects fall through to OTHER.
    """
    return OBJECT_TYPE_KINDS.get(type_name, ObjectKind.OTHER)


# --- Host results & progress ---

class HostResult:
    """Outcome of a fallible call into the host application."""

    __slots__ = ("ok", "reason", "value")

    def __init__(self, ok, reason="", value=None):
        self.ok = ok
        self.reason = reason
        self.value = value

    @classmethod
    def success(cls, value=None):
        return cls(True, "", value)

    @classmethod
    def failure(cls, reason):
        return cls(False, str(reason) or "Unknown error")

    def __bool__(self):
        return self.ok

    def __repr__(self):
        if self.ok:
            return f"HostResult(ok, value={self.value!r})"
        return f"HostResult(failed, reason={self.reason!r})"


class ProgressEvent:
    """Progress notification emitted by the import, clean and merge stages."""

    __slots__ = ("stage", "current", "total", "message")

    def __init__(self, stage, current, total, message=""):
        self.stage = stage
        self.current = current
        self.total = total
        self.message = message

    @property
    def fraction(self):
        if self.total <= 0:
            return 1.0
        return max(0.0, min(1.0, self.current / self.total))

    def __repr__(self):
        return (f"ProgressEvent({self.stage!r}, {self.current}/{self.total}, "
                f"{self.message!r})")


def emit(on_progress, stage, current, total, message=""):
    """Send a ProgressEvent to a subscriber, if there is one."""
    if on_progress is None:
        return
    on_progress(ProgressEvent(stage, current, total, message))


# --- Scene host contract ---

class SceneHost:
    """Routines the stages need from the host application.

    Subclasses override what they support. Fallible operations return a
    HostResult instead of raising; exceptions are reserved for genuine
    host faults.
    """

    def reset_scene(self):
        """Clear the workspace before the next file is imported."""
        raise NotImplementedError

    def object_count(self):
        raise NotImplementedError

    def import_file(self, path):
        """Import one FBX file into the current scene. Returns HostResult."""
        raise NotImplementedError

    def all_objects(self):
        raise NotImplementedError

    def selected_objects(self):
        raise NotImplementedError

    def object_kind(self, obj):
        """Return the ObjectKind of obj."""
        raise NotImplementedError

    def object_name(self, obj):
        raise NotImplementedError

    def material_of(self, obj):
        """Return the material handle assigned to obj, or None."""
        raise NotImplementedError

    def material_name(self, material):
        raise NotImplementedError

    def delete_objects(self, objects):
        """Delete all objects in one operation. Returns HostResult."""
        raise NotImplementedError

    def convert_to_mesh(self, obj):
        """Convert obj to an editable mesh. HostResult.value is the mesh object."""
        raise NotImplementedError

    def attach(self, target, source):
        """Join source into target. Returns HostResult."""
        raise NotImplementedError

    def rename(self, obj, name):
        raise NotImplementedError

    def assign_material(self, obj, material):
        raise NotImplementedError

    def select_objects(self, objects):
        raise NotImplementedError

    def save_as(self, path):
        """Save a copy of the current scene to path. Returns HostResult."""
        raise NotImplementedError


IMPORT_CAPABILITIES = ("reset_scene", "object_count", "import_file")
CLEAN_CAPABILITIES = ("all_objects", "object_kind", "object_name",
                      "delete_objects")
MERGE_CAPABILITIES = ("selected_objects", "all_objects", "object_kind",
                      "object_name", "material_of", "material_name",
                      "convert_to_mesh", "attach", "rename",
                      "assign_material", "select_objects")
SAVE_CAPABILITIES = ("save_as",)


def missing_capabilities(host, names):
    """Return the routines in names that host does not really provide."""
    missing = []
    for name in names:
        attr = getattr(host, name, None)
        if not callable(attr):
            missing.append(name)
            continue
        # Inherited SceneHost stubs only raise NotImplementedError
        stub = getattr(SceneHost, name, None)
        if stub is not None and getattr(type(host), name, None) is stub:
            missing.append(name)
    return missing


def require_capabilities(host, names):
    """Raise CapabilityError listing every routine host is missing."""
    # dict.fromkeys keeps order while dropping duplicates
    missing = missing_capabilities(host, list(dict.fromkeys(names)))
    if missing:
        logger.error(f"Scene host missing routines: {', '.join(missing)}")
        raise CapabilityError(missing)


# --- Memory Management Utilities ---

class MemoryManager:
    """Centralised memory management to avoid excessive gc.collect() calls."""

    _last_gc_time = 0
    _gc_interval = 5.0  # Minimum seconds between gc.collect() calls
    _pending_cleanup = False

    @classmethod
    def request_cleanup(cls, force=False):
        """Request garbage collection, but throttle to avoid performance issues."""
        current_time = time.time()

        if force or (current_time - cls._last_gc_time) >= cls._gc_interval:
            gc.collect()
            cls._last_gc_time = current_time
            cls._pending_cleanup = False
            logger.debug(f"Garbage collection performed (forced={force})")
        else:
            cls._pending_cleanup = True
            logger.debug("Garbage collection deferred (too frequent)")

    @classmethod
    def cleanup_if_pending(cls):
        """Perform cleanup if it was previously deferred."""
        if cls._pending_cleanup:
            cls.request_cleanup(force=True)
