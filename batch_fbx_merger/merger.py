# merger.py
"""
Merges geometry objects that share a material into one mesh per material.

Objects are grouped by material name. Each group's members are attached to
its first member in bounded batches so the undo buffer and peak memory stay
manageable on scenes with thousands of objects.
"""

import time
import logging

from .core import MemoryManager, emit
from .cleaner import GEOMETRY_KINDS

logger = logging.getLogger(__name__)

MERGED_PREFIX = "Merged_"

# (exclusive lower bound on object count, batch size), checked in order
LARGE_SCENE_TIERS = (
    (5000, 10),
    (2000, 15),
)
SMALL_SCENE_LIMIT = 500
SMALL_SCENE_BATCH = 50
DEFAULT_BATCH = 25


def choose_batch_size(count):
    """Pick how many objects to attach per batch for a scene of count objects."""
    for lower_bound, size in LARGE_SCENE_TIERS:
        if count > lower_bound:
            return size
    if count < SMALL_SCENE_LIMIT:
        return SMALL_SCENE_BATCH
    return DEFAULT_BATCH


def iter_batches(items, size):
    """Yield consecutive slices of items, each at most size long."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


class MaterialGroup:
    """Objects sharing one material, in first-seen order."""

    def __init__(self, key, material):
        self.key = key
        self.material = material
        self.objects = []

    def __len__(self):
        return len(self.objects)

    def __repr__(self):
        return f"MaterialGroup({self.key!r}, {len(self.objects)} objects)"


def group_by_material(host, objects):
    """
    Partition objects by material name.

    Args:
        host (SceneHost): Scene access.
        objects (list): Objects to group.

    Returns:
        tuple: (groups, skipped) where groups is a list of MaterialGroup in
        first-seen material order and skipped counts objects without a
        material.
    """
    groups = {}
    skipped = 0
    for obj in objects:
        material = host.material_of(obj)
        if material is None:
            skipped += 1
            logger.debug(f"Skipping '{host.object_name(obj)}': no material")
            continue
        key = host.material_name(material)
        group = groups.get(key)
        if group is None:
            group = groups[key] = MaterialGroup(key, material)
        group.objects.append(obj)
    return list(groups.values()), skipped


class GroupReport:
    """Per-material outcome of a merge."""

    def __init__(self, material_name, object_count):
        self.material_name = material_name
        self.object_count = object_count
        self.attached = 0
        self.attach_failures = []
        self.skipped = False
        self.skip_reason = ""
        self.result = None
        # Kept as text: result may be removed by a later workspace reset
        self.result_name = ""

    def __repr__(self):
        return (f"GroupReport({self.material_name!r}, objects={self.object_count}, "
                f"attached={self.attached}, skipped={self.skipped})")


class MergeReport:
    """Outcome of a merge_by_material call."""

    def __init__(self):
        self.success = True
        self.reason = ""
        self.groups = []
        self.results = []
        self.total_valid = 0
        self.skipped_unmaterialed = 0
        self.batch_size = 0
        self.elapsed = 0.0

    @classmethod
    def failed(cls, reason):
        report = cls()
        report.success = False
        report.reason = reason
        return report

    def summary(self):
        if not self.success:
            return f"Merge failed: {self.reason}"
        return (f"Merged {self.total_valid} objects into {len(self.results)} "
                f"in {self.elapsed:.2f}s (batch size {self.batch_size})")


def merge_group(host, group, batch_size, on_progress=None):
    """
    Attach every member of a material group to its first member.

    Args:
        host (SceneHost): Scene access.
        group (MaterialGroup): The group to merge.
        batch_size (int): Attach cycle length.
        on_progress (callable, optional): Receives ProgressEvent instances.

    Returns:
        GroupReport: ``result`` is the merged object, or None if the
        accumulator could not be converted to a mesh. ``result_name`` holds
        its final name, which stays readable after the object is gone.
    """
    report = GroupReport(group.key, len(group.objects))
    merged_name = f"{MERGED_PREFIX}{group.key}"

    if len(group.objects) == 1:
        only = group.objects[0]
        host.rename(only, merged_name)
        report.result = only
        report.result_name = host.object_name(only)
        return report

    accumulator = group.objects[0]
    try:
        converted = host.convert_to_mesh(accumulator)
    except Exception as e:
        converted = None
        reason = str(e)
    else:
        reason = converted.reason
    if not converted:
        report.skipped = True
        report.skip_reason = reason
        logger.warning(f"Skipping material '{group.key}': could not convert "
                       f"'{host.object_name(accumulator)}' to mesh ({reason})")
        return report
    if converted.value is not None:
        accumulator = converted.value

    remaining = group.objects[1:]
    batches = list(iter_batches(remaining, batch_size))
    for batch_index, batch in enumerate(batches, start=1):
        for obj in batch:
            # The host may invalidate obj on a successful join, so grab the name first
            obj_name = host.object_name(obj)
            try:
                attached = host.attach(accumulator, obj)
            except Exception as e:
                logger.warning(f"Attach of '{obj_name}' into '{group.key}' raised: {e}")
                report.attach_failures.append((obj_name, str(e)))
                continue
            if attached:
                report.attached += 1
            else:
                logger.warning(f"Attach of '{obj_name}' into '{group.key}' "
                               f"failed: {attached.reason}")
                report.attach_failures.append((obj_name, attached.reason))

        MemoryManager.request_cleanup()
        emit(on_progress, "attach", batch_index, len(batches),
             f"{group.key}: batch {batch_index}/{len(batches)}")

    host.rename(accumulator, merged_name)
    host.assign_material(accumulator, group.material)
    report.result = accumulator
    report.result_name = host.object_name(accumulator)
    return report


def merge_by_material(host, objects=None, on_progress=None):
    """
    Merge geometry by material and select the merged objects.

    Args:
        host (SceneHost): Scene access.
        objects (list, optional): Objects to merge. Defaults to the current
            selection.
        on_progress (callable, optional): Receives ProgressEvent instances.

    Returns:
        MergeReport: ``success`` is False only when there was nothing to
        merge.
    """
    start_time = time.time()

    if objects is None:
        objects = list(host.selected_objects())
    if not objects:
        logger.warning("Merge requested with no objects")
        return MergeReport.failed("No objects to merge")

    geometry = [obj for obj in objects if host.object_kind(obj) in GEOMETRY_KINDS]
    if not geometry:
        logger.warning(f"None of the {len(objects)} objects are geometry")
        return MergeReport.failed("No geometry objects to merge")

    groups, skipped = group_by_material(host, geometry)

    report = MergeReport()
    report.skipped_unmaterialed = skipped
    report.total_valid = sum(len(group) for group in groups)
    report.batch_size = choose_batch_size(report.total_valid)

    logger.info(f"Merging {report.total_valid} objects in {len(groups)} "
                f"material groups (batch size {report.batch_size})")
    if skipped:
        logger.info(f"Ignored {skipped} objects without a material")

    for index, group in enumerate(groups, start=1):
        emit(on_progress, "merge", index - 1, len(groups),
             f"Material {index}/{len(groups)}: {group.key}")
        group_report = merge_group(host, group, report.batch_size, on_progress)
        report.groups.append(group_report)
        if group_report.result is not None:
            report.results.append(group_report.result)
        logger.info(f"  {group.key}: {group_report.object_count} objects")
        MemoryManager.request_cleanup()

    emit(on_progress, "merge", len(groups), len(groups), "Merge complete")

    host.select_objects(report.results)
    MemoryManager.cleanup_if_pending()

    report.elapsed = time.time() - start_time
    logger.info(report.summary())
    return report
