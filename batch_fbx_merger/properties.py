# properties.py
"""
This module defines the scene settings for batch FBX import and merge.
It includes the file source, sort order, the clean/merge/save chain
toggles, run-time progress state and the summary of the last run.
"""

import bpy
from bpy.props import (StringProperty, EnumProperty, IntProperty,
                       BoolProperty, FloatProperty, CollectionProperty,
                       PointerProperty)
from bpy.types import PropertyGroup


class BatchRunFailure(PropertyGroup):
    # name holds the file name
    reason: StringProperty(name="Reason")


class BatchRunResult(PropertyGroup):
    # name holds the merged object's name
    object_count: IntProperty(name="Objects", default=0)


class BatchMergeSettings(PropertyGroup):
    # Where the files come from
    source_mode: EnumProperty(
        name="Source",
        description="How the FBX files to import are chosen",
        items=[
            ("DIRECTORY", "Directory", "Import every FBX file in a folder"),
            ("FILES", "Files", "Pick individual FBX files in the file browser"),
        ],
        default="DIRECTORY"
    )

    source_directory: StringProperty(
        name="Folder",
        description="Folder containing the FBX files to import",
        default="",
        subtype="DIR_PATH"
    )

    # Processing order
    sort_mode: EnumProperty(
        name="Sort",
        description="Order in which files are processed",
        items=[
            ("ALPHABETICAL", "Name", "Case-insensitive alphabetical order"),
            ("SIZE_ASCENDING", "Smallest First", "Smallest files first"),
            ("SIZE_DESCENDING", "Largest First", "Largest files first"),
            ("NONE", "Unsorted", "Keep the order the files were listed in"),
        ],
        default="ALPHABETICAL"
    )

    # Processing chain
    clean_after_import: BoolProperty(
        name="Clean After Import",
        description="Delete lights, cameras, empties, curves and other "
                    "non-geometry objects after each import",
        default=True
    )

    merge_after_clean: BoolProperty(
        name="Merge By Material",
        description="Join the remaining geometry into one object per material",
        default=True
    )

    save_cleaned_files: BoolProperty(
        name="Save Result",
        description="Save each processed file as a .blend next to the source FBX",
        default=True
    )

    # Run-time state, shown while a batch is running
    is_running: BoolProperty(default=False, options={"SKIP_SAVE"})
    cancel_requested: BoolProperty(default=False, options={"SKIP_SAVE"})
    progress: FloatProperty(
        name="Progress",
        default=0.0, min=0.0, max=1.0, subtype="FACTOR",
        options={"SKIP_SAVE"}
    )
    status_text: StringProperty(default="", options={"SKIP_SAVE"})

    # Last run summary
    last_summary: StringProperty(default="")
    last_failures: CollectionProperty(type=BatchRunFailure)
    last_results: CollectionProperty(type=BatchRunResult)


classes = (
    BatchRunFailure,
    BatchRunResult,
    BatchMergeSettings,
)


def register_properties():
    """Register the property groups and create the Scene property"""
    for cls in classes:
        bpy.utils.register_class(cls)
    bpy.types.Scene.batch_fbx_merger = PointerProperty(type=BatchMergeSettings)


def unregister_properties():
    """Unregister the property groups and remove the Scene property"""
    if hasattr(bpy.types.Scene, "batch_fbx_merger"):
        delattr(bpy.types.Scene, "batch_fbx_merger")
    for cls in reversed(classes):
        bpy.utils.unregister_class(cls)
