# panels.py
"""
Batch FBX Merger UI Panels
This module contains the sidebar panels for the add-on: the main settings
and action panel, and the summary of the last run.
"""

import logging
from bpy.types import Panel

logger = logging.getLogger(__name__)

MAX_LISTED_ITEMS = 10


# Main UI Panel
class VIEW3D_PT_batch_fbx_merger(Panel):
    bl_label = "Batch FBX Import"
    bl_idname = "VIEW3D_PT_batch_fbx_merger"
    bl_space_type = "VIEW_3D"
    bl_region_type = "UI"
    bl_category = "Batch FBX"

    def draw(self, context):
        layout = self.layout

        settings = getattr(context.scene, "batch_fbx_merger", None)
        if settings is None:
            logger.error("context.scene has no 'batch_fbx_merger' attribute!")
            layout.label(text="Error: Property group not registered?")
            return

        # While running, only progress and cancel are shown
        if settings.is_running:
            col = layout.column(align=True)
            col.label(text=settings.status_text or "Starting...", icon="IMPORT")
            col.prop(settings, "progress", text="", slider=True)
            row = layout.row()
            row.enabled = not settings.cancel_requested
            row.operator("import_scene.batch_fbx_cancel",
                         text="Cancelling..." if settings.cancel_requested else "Cancel",
                         icon="CANCEL")
            return

        layout.use_property_split = True
        layout.use_property_decorate = False

        # Source settings
        col = layout.column(heading="Source", align=True)
        row = col.row(align=True)
        row.prop(settings, "source_mode", expand=True)
        if settings.source_mode == "DIRECTORY":
            col.prop(settings, "source_directory")
        col.prop(settings, "sort_mode")

        # Processing chain
        col = layout.column(heading="After Import", align=True)
        col.prop(settings, "clean_after_import")
        col.prop(settings, "merge_after_clean")
        col.prop(settings, "save_cleaned_files")

        layout.separator()

        row = layout.row()
        row.scale_y = 1.4
        row.operator("import_scene.batch_fbx_merge", icon="IMPORT")

        # Stand-alone tools for the current scene
        col = layout.column(align=True)
        col.operator("object.batch_fbx_clean_scene", icon="TRASH")
        selected = len(context.selected_objects)
        col.operator("object.batch_fbx_merge_by_material",
                     text=f"Merge Selected By Material ({selected})",
                     icon="AUTOMERGE_ON")


# Last Run Panel
class VIEW3D_PT_batch_fbx_merger_last_run(Panel):
    bl_label = "Last Run"
    bl_idname = "VIEW3D_PT_batch_fbx_merger_last_run"
    bl_space_type = "VIEW_3D"
    bl_region_type = "UI"
    bl_category = "Batch FBX"
    bl_parent_id = "VIEW3D_PT_batch_fbx_merger"
    bl_options = {"DEFAULT_CLOSED"}

    @classmethod
    def poll(cls, context):
        settings = getattr(context.scene, "batch_fbx_merger", None)
        return settings is not None and not settings.is_running

    def draw(self, context):
        layout = self.layout
        settings = context.scene.batch_fbx_merger

        if not settings.last_summary:
            layout.label(text="Nothing run yet.")
            return

        # Summary can be long; wrap it crudely across rows
        col = layout.column(align=True)
        for sentence in settings.last_summary.split(". "):
            if sentence:
                col.label(text=sentence.rstrip(".") + ".")

        if settings.last_results:
            box = layout.box()
            col = box.column(align=True)
            col.label(text="Merged objects:")
            for i, item in enumerate(settings.last_results):
                if i >= MAX_LISTED_ITEMS:
                    col.label(text=f"... and "
                              f"{len(settings.last_results) - MAX_LISTED_ITEMS} more")
                    break
                row = col.row(align=True)
                op = row.operator("object.batch_fbx_select_by_name",
                                  text="", icon="RESTRICT_SELECT_OFF")
                op.object_name = item.name
                row.label(text=item.name)
                row.label(text=f"{item.object_count} obj")

        if settings.last_failures:
            box = layout.box()
            col = box.column(align=True)
            col.label(text="Problems:", icon="ERROR")
            for i, item in enumerate(settings.last_failures):
                if i >= MAX_LISTED_ITEMS:
                    col.label(text=f"... and "
                              f"{len(settings.last_failures) - MAX_LISTED_ITEMS} more")
                    break
                col.label(text=f"{item.name}: {item.reason}")


# Registration
classes = (
    VIEW3D_PT_batch_fbx_merger,
    VIEW3D_PT_batch_fbx_merger_last_run,
)
