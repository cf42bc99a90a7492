# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTIBILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.
#
# Copyright (C) 2025 Batch FBX Merger contributors

bl_info = {
    "name": "Batch FBX Merger",
    "version": (1, 0, 0),
    "blender": (4, 2, 0),
    "location": "View3D > Sidebar > Batch FBX, File > Import",
    "description": "Batch-import FBX files, strip non-geometry objects "
                   "and merge meshes by material",
    "category": "Import-Export",
}

import logging

# --- Setup Logger ---
logger = logging.getLogger(__name__)
# Clear any existing handlers to prevent accumulation on addon reload
if logger.handlers:
    logger.handlers.clear()
handler = logging.StreamHandler()
formatter = logging.Formatter("%(name)s:%(levelname)s: %(message)s")
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(logging.INFO)  # Default level
# Prevent propagation to avoid duplicate logs
logger.propagate = False


# Blender-only modules are imported on registration so the processing
# modules (core, importer, cleaner, merger) stay importable without bpy.

def register():
    import bpy
    from . import properties, operators, panels

    logger.info("Begin registration.")
    # 1. Properties FIRST
    properties.register_properties()
    logger.info("Properties registered.")

    # 2. Operators, then panels
    operators.register()
    for cls in panels.classes:
        bpy.utils.register_class(cls)
    logger.info("Panel/Operator classes registered.")
    logger.info("Registration complete.")


def unregister():
    import bpy
    from . import properties, operators, panels

    logger.info("Begin unregistration.")
    # Unregister in REVERSE order
    for cls in reversed(panels.classes):
        try:
            bpy.utils.unregister_class(cls)
        except RuntimeError as e:
            logger.error(f"Couldn't unregister {cls}: {e}")
    operators.unregister()
    logger.info("Panel/Operator classes unregistered.")

    # Properties LAST
    properties.unregister_properties()
    logger.info("Properties unregistered.")
    logger.info("Unregistration complete.")


if __name__ == "__main__":
    register()
