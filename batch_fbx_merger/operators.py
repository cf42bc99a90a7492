# operators.py
"""
Contains Blender operators for the Batch FBX Merger add-on.
Handles the batch import loop (modal, with progress and cancellation),
the stand-alone clean and merge commands, and selection helpers for the
last-run summary panel.
"""

import bpy
import os
import logging
from bpy.types import Operator, OperatorFileListElement
from bpy.props import StringProperty, CollectionProperty

from .core import (
    ValidationError,
    CapabilityError,
    CLEAN_CAPABILITIES,
    MERGE_CAPABILITIES,
    require_capabilities,
)
from .importer import ImportOptions, BatchImporter, collect_files
from .cleaner import clean_scene
from .merger import merge_by_material
from .blender_host import BlenderSceneHost

logger = logging.getLogger(__name__)

# --- Constants ---
TIMER_INTERVAL_SECONDS = 0.1
MAX_LISTED_FAILURES = 50


def redraw_ui(context):
    """Tag every area for redraw so progress labels update."""
    wm = context.window_manager
    if wm is None:
        return
    for window in wm.windows:
        for area in window.screen.areas:
            area.tag_redraw()


def store_results(settings, merge_report):
    """Copy merged object names into the last-run summary."""
    settings.last_results.clear()
    if merge_report is None:
        return
    for group in merge_report.groups:
        if not group.result_name:
            continue
        item = settings.last_results.add()
        item.name = group.result_name
        item.object_count = group.object_count


def store_failures(settings, status):
    settings.last_failures.clear()
    entries = status.failures + status.warnings
    for path, reason in entries[:MAX_LISTED_FAILURES]:
        item = settings.last_failures.add()
        item.name = os.path.basename(path)
        item.reason = reason


# --- Operators ---

class IMPORT_SCENE_OT_batch_fbx_merge(Operator):
    """Imports FBX files one by one, cleaning and merging each by material."""
    bl_idname = "import_scene.batch_fbx_merge"
    bl_label = "Batch Import FBX"
    bl_options = {"REGISTER"}

    # Filled by the file browser in FILES mode
    directory: StringProperty(subtype="DIR_PATH", options={"HIDDEN", "SKIP_SAVE"})
    files: CollectionProperty(type=OperatorFileListElement,
                              options={"HIDDEN", "SKIP_SAVE"})
    filter_glob: StringProperty(default="*.fbx", options={"HIDDEN"})

    _timer = None
    _importer = None

    @classmethod
    def poll(cls, context):
        settings = getattr(context.scene, "batch_fbx_merger", None)
        return settings is not None and not settings.is_running

    def _prepare(self, context):
        """Validate the settings and build the importer.

        Raises:
            ValidationError: If there is nothing to import.
            CapabilityError: If the scene host is incomplete.
        """
        settings = context.scene.batch_fbx_merger
        options = ImportOptions.from_settings(settings)
        directory = bpy.path.abspath(settings.source_directory) if settings.source_directory else ""
        chosen = [os.path.join(self.directory, f.name) for f in self.files if f.name]
        paths = collect_files(options, directory=directory, files=chosen)

        scene = context.scene
        return BatchImporter(
            BlenderSceneHost(),
            paths,
            options,
            on_progress=self._on_progress,
            should_cancel=lambda: scene.batch_fbx_merger.cancel_requested,
        )

    def _on_progress(self, event):
        context = bpy.context
        settings = context.scene.batch_fbx_merger
        if event.stage == "import":
            settings.progress = event.fraction
            settings.status_text = f"{event.current}/{event.total}: {event.message}"
            context.window_manager.progress_update(event.current)
        else:
            logger.debug(f"{event.stage}: {event.message}")
        redraw_ui(context)

    def _start(self, context, importer):
        settings = context.scene.batch_fbx_merger
        settings.is_running = True
        settings.cancel_requested = False
        settings.progress = 0.0
        settings.status_text = f"0/{importer.status.total}"
        self._importer = importer
        context.window_manager.progress_begin(0, max(importer.status.total, 1))

    def _finish(self, context):
        wm = context.window_manager
        if self._timer is not None:
            wm.event_timer_remove(self._timer)
            self._timer = None
        wm.progress_end()

        settings = context.scene.batch_fbx_merger
        status = self._importer.status
        status.finish()
        settings.is_running = False
        settings.cancel_requested = False
        settings.status_text = ""

        message, overall_success = status.summary()
        settings.last_summary = message
        store_failures(settings, status)
        store_results(settings, status.scene_merge_report())

        logger.log(logging.INFO if overall_success else logging.WARNING, message)
        self.report({"INFO"} if overall_success else {"WARNING"}, message)
        redraw_ui(context)
        return {"CANCELLED"} if status.is_cancelled else {"FINISHED"}

    def invoke(self, context, event):
        settings = context.scene.batch_fbx_merger
        if settings.source_mode == "FILES" and not self.files:
            context.window_manager.fileselect_add(self)
            return {"RUNNING_MODAL"}
        return self.execute(context)

    def execute(self, context):
        """Runs the batch import, modally when a window is available."""
        try:
            importer = self._prepare(context)
        except ValidationError as e:
            self.report({"WARNING"}, str(e))
            logger.warning(f"Validation failed: {e}")
            return {"CANCELLED"}
        except CapabilityError as e:
            self.report({"ERROR"}, str(e))
            logger.error(f"Capability check failed: {e}")
            return {"CANCELLED"}
        except Exception as e:
            self.report({"ERROR"}, f"Unexpected setup error: {e}")
            logger.error(f"Unexpected setup error: {e}", exc_info=True)
            return {"CANCELLED"}

        self._start(context, importer)

        if bpy.app.background or context.window is None:
            try:
                importer.run()
            except Exception as e:
                logger.error(f"Critical error during batch import: {e}", exc_info=True)
                self.report({"ERROR"}, f"Critical import error: {e}")
            return self._finish(context)

        wm = context.window_manager
        self._timer = wm.event_timer_add(TIMER_INTERVAL_SECONDS, window=context.window)
        wm.modal_handler_add(self)
        logger.info("Batch import started (press Esc to cancel)")
        return {"RUNNING_MODAL"}

    def modal(self, context, event):
        if event.type == "ESC":
            context.scene.batch_fbx_merger.cancel_requested = True
            return {"RUNNING_MODAL"}
        if event.type != "TIMER" or event.timer != self._timer:
            return {"PASS_THROUGH"}

        try:
            more = self._importer.step()
        except Exception as e:
            logger.error(f"Critical error during batch import: {e}", exc_info=True)
            self.report({"ERROR"}, f"Critical import error: {e}")
            more = False
        if not more:
            return self._finish(context)
        return {"RUNNING_MODAL"}

    def cancel(self, context):
        # Blender tears the modal down on file load or window close
        if self._importer is not None:
            self._importer.status.is_cancelled = True
            self._finish(context)


class IMPORT_SCENE_OT_batch_fbx_cancel(Operator):
    """Stops the running batch import after the current file."""
    bl_idname = "import_scene.batch_fbx_cancel"
    bl_label = "Cancel Batch Import"
    bl_options = {"REGISTER", "INTERNAL"}

    @classmethod
    def poll(cls, context):
        settings = getattr(context.scene, "batch_fbx_merger", None)
        return settings is not None and settings.is_running

    def execute(self, context):
        context.scene.batch_fbx_merger.cancel_requested = True
        logger.info("Cancellation requested; stopping after the current file")
        return {"FINISHED"}


class OBJECT_OT_clean_scene(Operator):
    """Deletes lights, cameras, empties, curves and other non-geometry objects."""
    bl_idname = "object.batch_fbx_clean_scene"
    bl_label = "Clean Scene"
    bl_options = {"REGISTER", "UNDO"}

    def execute(self, context):
        host = BlenderSceneHost(context)
        try:
            require_capabilities(host, CLEAN_CAPABILITIES)
            result = clean_scene(host)
        except CapabilityError as e:
            self.report({"ERROR"}, str(e))
            return {"CANCELLED"}
        except Exception as e:
            logger.error(f"Clean failed: {e}", exc_info=True)
            self.report({"ERROR"}, f"Clean failed: {e}")
            return {"CANCELLED"}

        if not result.success:
            self.report({"WARNING"}, f"Could not delete objects: {result.error}")
            return {"CANCELLED"}
        self.report({"INFO"}, f"Deleted {len(result.deleted)} objects, "
                              f"kept {len(result.kept)} geometry objects.")
        return {"FINISHED"}


class OBJECT_OT_merge_by_material(Operator):
    """Joins the selected geometry into one object per material."""
    bl_idname = "object.batch_fbx_merge_by_material"
    bl_label = "Merge By Material"
    bl_options = {"REGISTER", "UNDO"}

    @classmethod
    def poll(cls, context):
        return context.mode == "OBJECT"

    def execute(self, context):
        host = BlenderSceneHost(context)
        try:
            require_capabilities(host, MERGE_CAPABILITIES)
            report = merge_by_material(host)
        except CapabilityError as e:
            self.report({"ERROR"}, str(e))
            return {"CANCELLED"}
        except Exception as e:
            logger.error(f"Merge failed: {e}", exc_info=True)
            self.report({"ERROR"}, f"Merge failed: {e}")
            return {"CANCELLED"}

        if not report.success:
            self.report({"WARNING"}, report.reason)
            return {"CANCELLED"}

        settings = context.scene.batch_fbx_merger
        store_results(settings, report)
        settings.last_summary = report.summary()
        self.report({"INFO"}, report.summary())
        return {"FINISHED"}


class OBJECT_OT_select_by_name(Operator):
    """Selects and focuses on the specified object."""
    bl_idname = "object.batch_fbx_select_by_name"
    bl_label = "Select Object by Name"
    bl_description = "Selects and focuses on the specified object"
    bl_options = {"REGISTER", "INTERNAL"}

    object_name: StringProperty()

    def execute(self, context):
        """Executes the selection using direct API."""
        target_obj = context.scene.objects.get(self.object_name)
        if not target_obj:
            logger.warning(f"Object '{self.object_name}' "
                           f"not found for selection.")
            self.report({"WARNING"}, f"'{self.object_name}' is not in this scene")
            return {"CANCELLED"}

        for obj in context.scene.objects:
            if obj.select_get():
                obj.select_set(False)

        target_obj.select_set(True)
        context.view_layer.objects.active = target_obj

        return {"FINISHED"}


# --- Registration ---
classes = (
    IMPORT_SCENE_OT_batch_fbx_merge,
    IMPORT_SCENE_OT_batch_fbx_cancel,
    OBJECT_OT_clean_scene,
    OBJECT_OT_merge_by_material,
    OBJECT_OT_select_by_name,
)


def menu_func_import(self, context):
    self.layout.operator(IMPORT_SCENE_OT_batch_fbx_merge.bl_idname,
                         text="Batch FBX (Clean & Merge)")


def register():
    """Registers operator classes."""
    for cls in classes:
        try:
            bpy.utils.register_class(cls)
        except ValueError:
            logger.warning(f"Class {cls.__name__} already registered.")
    bpy.types.TOPBAR_MT_file_import.append(menu_func_import)


def unregister():
    """Unregisters operator classes."""
    bpy.types.TOPBAR_MT_file_import.remove(menu_func_import)
    for cls in reversed(classes):
        try:
            bpy.utils.unregister_class(cls)
        except RuntimeError:
            logger.warning(f"Class {cls.__name__} already unregistered.")
