# blender_host.py
"""
SceneHost implementation on top of bpy.

Wraps the Blender calls the import, clean and merge stages need and turns
operator failures into HostResult values.
"""

import bpy
import contextlib
import logging

from .core import SceneHost, HostResult, kind_from_type

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def temp_selection_context(context, active_object=None, selected_objects=None):
    """
    Temporarily set the active object and selection using direct API.

    Args:
        context (bpy.context): The current Blender context.
        active_object (bpy.types.Object, optional):
            The object to set as active.
        selected_objects (list, optional): List of objects to select.
    """
    original_active = context.view_layer.objects.active
    original_selected = [obj for obj in context.scene.objects
                         if obj.select_get()]

    try:
        for obj in original_selected:
            obj.select_set(False)

        for obj in selected_objects or []:
            if obj and obj.name in context.scene.objects:
                try:
                    obj.select_set(True)
                except ReferenceError:
                    logger.warning(f"Could not select '{obj.name}' "
                                   f"- object reference invalid.")

        if active_object and active_object.name in context.scene.objects:
            context.view_layer.objects.active = active_object

        yield

    finally:
        # Objects may have been removed (join, convert) while we held the selection
        for obj in context.scene.objects:
            obj.select_set(False)

        for obj in original_selected:
            try:
                if obj.name in context.scene.objects:
                    obj.select_set(True)
            except ReferenceError:
                pass

        try:
            if original_active and original_active.name in context.scene.objects:
                context.view_layer.objects.active = original_active
        except ReferenceError:
            pass


class BlenderSceneHost(SceneHost):
    """Scene access for a Blender context.

    Without an explicit context the live bpy.context is used, which is what
    a modal operator needs since its invoke-time context goes stale.
    """

    def __init__(self, context=None):
        self._context = context

    @property
    def context(self):
        return self._context if self._context is not None else bpy.context

    # --- Workspace ---

    def reset_scene(self):
        objects = list(bpy.data.objects)
        if objects:
            bpy.data.batch_remove(objects)
        # Drop meshes/materials left by the previous file so names don't pick up .001 suffixes
        bpy.data.orphans_purge(do_local_ids=True, do_linked_ids=True, do_recursive=True)
        logger.debug(f"Workspace reset ({len(objects)} objects removed)")

    def object_count(self):
        return len(self.context.scene.objects)

    def import_file(self, path):
        try:
            outcome = bpy.ops.import_scene.fbx(filepath=path)
        except RuntimeError as e:
            return HostResult.failure(e)
        if "FINISHED" not in outcome:
            return HostResult.failure(f"FBX importer returned {sorted(outcome)}")
        return HostResult.success()

    def save_as(self, path):
        try:
            bpy.ops.wm.save_as_mainfile(filepath=path, copy=True)
        except RuntimeError as e:
            return HostResult.failure(e)
        return HostResult.success(path)

    # --- Introspection ---

    def all_objects(self):
        return list(self.context.scene.objects)

    def selected_objects(self):
        return list(self.context.selected_objects)

    def object_kind(self, obj):
        return kind_from_type(obj.type)

    def object_name(self, obj):
        try:
            return obj.name
        except ReferenceError:
            return "<removed>"

    def material_of(self, obj):
        for slot in getattr(obj, "material_slots", ()):
            if slot.material is not None:
                return slot.material
        return None

    def material_name(self, material):
        return material.name

    # --- Editing ---

    def delete_objects(self, objects):
        try:
            bpy.data.batch_remove(list(objects))
        except (RuntimeError, ReferenceError) as e:
            return HostResult.failure(e)
        return HostResult.success()

    def convert_to_mesh(self, obj):
        if obj.type == "MESH":
            return HostResult.success(obj)
        context = self.context
        name = obj.name
        before = set(context.scene.objects.keys())
        try:
            with temp_selection_context(context, obj, [obj]):
                with context.temp_override(active_object=obj,
                                           selected_objects=[obj],
                                           selected_editable_objects=[obj]):
                    bpy.ops.object.convert(target="MESH")
        except (RuntimeError, ReferenceError) as e:
            return HostResult.failure(e)

        # Metaballs are replaced by a new mesh object and the original removed
        try:
            if obj.type == "MESH":
                return HostResult.success(obj)
        except ReferenceError:
            pass
        created = [o for o in context.scene.objects
                   if o.name not in before and o.type == "MESH"]
        if not created:
            return HostResult.failure(f"'{name}' produced no mesh on conversion")
        logger.debug(f"'{name}' converted into new object '{created[0].name}'")
        return HostResult.success(created[0])

    def attach(self, target, source):
        if source.type != "MESH":
            converted = self.convert_to_mesh(source)
            if not converted:
                return converted
            source = converted.value
        try:
            with self.context.temp_override(active_object=target,
                                            selected_objects=[target, source],
                                            selected_editable_objects=[target, source]):
                outcome = bpy.ops.object.join()
        except RuntimeError as e:
            return HostResult.failure(e)
        if "FINISHED" not in outcome:
            return HostResult.failure(f"Join returned {sorted(outcome)}")
        return HostResult.success(target)

    def rename(self, obj, name):
        obj.name = name

    def assign_material(self, obj, material):
        if obj.material_slots:
            obj.material_slots[0].material = material
        else:
            obj.data.materials.append(material)

    def select_objects(self, objects):
        view_layer = self.context.view_layer
        for obj in self.context.scene.objects:
            if obj.select_get():
                obj.select_set(False)
        for obj in objects:
            obj.select_set(True)
        if objects:
            view_layer.objects.active = objects[0]
