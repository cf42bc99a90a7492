# importer.py
"""
Batch FBX import loop.

Files are imported one at a time into a freshly reset workspace. After each
successful import the scene can be cleaned, merged by material and saved
next to the source file. The loop is driven step by step so the caller can
keep the UI responsive and poll for cancellation between files.
"""

import os
import time
import logging
from enum import Enum

from .core import (
    ValidationError,
    MemoryManager,
    IMPORT_CAPABILITIES,
    CLEAN_CAPABILITIES,
    MERGE_CAPABILITIES,
    SAVE_CAPABILITIES,
    require_capabilities,
    emit,
)
from .cleaner import clean_scene
from .merger import merge_by_material

logger = logging.getLogger(__name__)

FBX_EXTENSION = ".fbx"
OUTPUT_EXTENSION = ".blend"


class SortMode(Enum):
    ALPHABETICAL = "ALPHABETICAL"
    SIZE_ASCENDING = "SIZE_ASCENDING"
    SIZE_DESCENDING = "SIZE_DESCENDING"
    NONE = "NONE"


class SourceMode(Enum):
    DIRECTORY = "DIRECTORY"
    FILES = "FILES"


class ImportOptions:
    """Settings for one batch run."""

    def __init__(self, source_mode=SourceMode.DIRECTORY,
                 sort_mode=SortMode.ALPHABETICAL,
                 clean_after_import=True,
                 merge_after_clean=True,
                 save_cleaned_files=True,
                 output_extension=OUTPUT_EXTENSION):
        self.source_mode = source_mode
        self.sort_mode = sort_mode
        self.clean_after_import = clean_after_import
        self.merge_after_clean = merge_after_clean
        self.save_cleaned_files = save_cleaned_files
        self.output_extension = output_extension

    @classmethod
    def from_settings(cls, settings):
        """Build options from the scene property group."""
        return cls(
            source_mode=SourceMode(settings.source_mode),
            sort_mode=SortMode(settings.sort_mode),
            clean_after_import=settings.clean_after_import,
            merge_after_clean=settings.merge_after_clean,
            save_cleaned_files=settings.save_cleaned_files,
        )

    def required_capabilities(self):
        names = list(IMPORT_CAPABILITIES)
        if self.clean_after_import:
            names.extend(CLEAN_CAPABILITIES)
        if self.merge_after_clean:
            names.extend(MERGE_CAPABILITIES)
        if self.save_cleaned_files:
            names.extend(SAVE_CAPABILITIES)
        return names


class ImportStatus:
    """Run record of one batch import. Owned by the caller, not global."""

    def __init__(self, total):
        self.total = total
        self.current_index = 0
        self.success_count = 0
        self.failed_count = 0
        self.current_file = ""
        self.start_time = time.time()
        self.end_time = None
        self.is_cancelled = False
        self.failures = []
        self.warnings = []
        self.merge_reports = []

    @property
    def processed(self):
        return self.success_count + self.failed_count

    @property
    def finished(self):
        return self.end_time is not None

    @property
    def elapsed(self):
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    def finish(self):
        if self.end_time is None:
            self.end_time = time.time()

    def scene_merge_report(self):
        """Merge report of the file still loaded in the workspace, if any.

        A file that fails after a merged one resets the workspace, so the
        earlier report no longer describes what is in the scene.
        """
        if not self.merge_reports:
            return None
        path, report = self.merge_reports[-1]
        if path != self.current_file:
            return None
        return report

    def summary(self):
        """Build the final report message.

        Returns:
            tuple: (message, overall_success)
        """
        overall_success = self.failed_count == 0 and not self.is_cancelled
        verb = "cancelled" if self.is_cancelled else "finished"
        message = (
            f"Import {verb} in {self.elapsed:.2f}s. "
            f"{self.success_count} succeeded, {self.failed_count} failed "
            f"({self.processed}/{self.total} files processed)."
        )
        if self.failures:
            names = [os.path.basename(path) for path, _ in self.failures]
            message += (f" Failed: {', '.join(names[:5])}"
                        f"{'...' if len(names) > 5 else ''}. Check console/log.")
        return message, overall_success


def find_fbx_files(directory):
    """List the FBX files directly inside directory (not recursive)."""
    if not directory or not os.path.isdir(directory):
        raise ValidationError(f"Directory not found: '{directory}'")
    found = []
    for entry in os.listdir(directory):
        path = os.path.join(directory, entry)
        if entry.lower().endswith(FBX_EXTENSION) and os.path.isfile(path):
            found.append(path)
    return found


def sort_files(paths, sort_mode, size_of=os.path.getsize):
    """
    Order paths for processing.

    Sorting is stable, so files that compare equal keep their input order.

    Args:
        paths (list): File paths.
        sort_mode (SortMode): Ordering policy; NONE keeps the input order.
        size_of (callable): Byte length lookup for the size policies.

    Returns:
        list: A new, sorted list.
    """
    if sort_mode is SortMode.ALPHABETICAL:
        return sorted(paths, key=lambda path: path.lower())
    if sort_mode is SortMode.SIZE_ASCENDING:
        return sorted(paths, key=size_of)
    if sort_mode is SortMode.SIZE_DESCENDING:
        return sorted(paths, key=size_of, reverse=True)
    return list(paths)


def collect_files(options, directory=None, files=None):
    """Resolve the list of files to import for the configured source mode."""
    if options.source_mode is SourceMode.DIRECTORY:
        if not directory:
            raise ValidationError("No source directory chosen.")
        paths = find_fbx_files(directory)
    else:
        paths = [path for path in (files or [])
                 if path.lower().endswith(FBX_EXTENSION)]

    if not paths:
        where = f" in '{directory}'" if directory else ""
        raise ValidationError(f"No FBX files found{where}.")
    return paths


def output_path_for(path, extension=OUTPUT_EXTENSION):
    """Sibling of path with the same base name and the given extension."""
    return os.path.splitext(path)[0] + extension


class BatchImporter:
    """
    Imports a list of FBX files one step at a time.

    Args:
        host (SceneHost): Scene access.
        paths (list): Files to import; sorted according to options.
        options (ImportOptions): Run settings.
        on_progress (callable, optional): Receives ProgressEvent instances.
        should_cancel (callable, optional): Polled once before each file.

    Raises:
        CapabilityError: If host lacks a routine the options need.
    """

    def __init__(self, host, paths, options, on_progress=None, should_cancel=None):
        require_capabilities(host, options.required_capabilities())
        self.host = host
        self.options = options
        self.on_progress = on_progress
        self.should_cancel = should_cancel
        self.paths = sort_files(paths, options.sort_mode)
        self.status = ImportStatus(len(self.paths))
        logger.info(f"Prepared batch import of {len(self.paths)} files "
                    f"(sort: {options.sort_mode.value})")

    @property
    def finished(self):
        return self.status.finished

    def step(self):
        """Process the next file.

        Returns:
            bool: True while there are files left to process.
        """
        status = self.status
        if status.finished:
            return False

        if self.should_cancel is not None and self.should_cancel():
            status.is_cancelled = True
            status.finish()
            logger.info(f"Batch import cancelled after {status.processed} files")
            return False

        if status.current_index >= len(self.paths):
            status.finish()
            return False

        path = self.paths[status.current_index]
        status.current_file = path
        status.current_index += 1
        logger.info(f"Processing ({status.current_index}/{status.total}): "
                    f"{os.path.basename(path)}")

        if self._import_one(path):
            status.success_count += 1
            self._post_process(path)

        MemoryManager.request_cleanup()
        emit(self.on_progress, "import", status.current_index, status.total,
             os.path.basename(path))

        if status.current_index >= len(self.paths):
            status.finish()
            return False
        return True

    def run(self):
        """Process every remaining file and return the ImportStatus."""
        try:
            while self.step():
                pass
        finally:
            self.status.finish()
            MemoryManager.cleanup_if_pending()
        return self.status

    def _record_failure(self, path, reason):
        self.status.failed_count += 1
        self.status.failures.append((path, reason))
        logger.warning(f"Import failed for {os.path.basename(path)}: {reason}")

    def _import_one(self, path):
        host = self.host
        try:
            host.reset_scene()
            before = host.object_count()
            result = host.import_file(path)
            after = host.object_count()
        except Exception as e:
            self._record_failure(path, str(e) or e.__class__.__name__)
            return False

        if not result:
            self._record_failure(path, result.reason)
            return False
        if after <= before:
            self._record_failure(path, "No objects were imported")
            return False
        logger.info(f"Imported {after - before} objects from {os.path.basename(path)}")
        return True

    def _post_process(self, path):
        options = self.options
        name = os.path.basename(path)
        try:
            merge_input = None
            if options.clean_after_import:
                cleaned = clean_scene(self.host, on_progress=self.on_progress)
                if not cleaned.success:
                    self.status.warnings.append((path, f"Clean failed: {cleaned.error}"))
                merge_input = cleaned.kept
            if options.merge_after_clean:
                if merge_input is None:
                    merge_input = list(self.host.all_objects())
                report = merge_by_material(self.host, merge_input, self.on_progress)
                self.status.merge_reports.append((path, report))
                if not report.success:
                    self.status.warnings.append((path, report.reason))
            if options.save_cleaned_files:
                target = output_path_for(path, options.output_extension)
                saved = self.host.save_as(target)
                if saved:
                    logger.info(f"Saved {os.path.basename(target)}")
                else:
                    self.status.warnings.append((path, f"Save failed: {saved.reason}"))
                    logger.warning(f"Could not save {target}: {saved.reason}")
        except Exception as e:
            logger.error(f"Post-processing failed for {name}: {e}", exc_info=True)
            self.status.warnings.append((path, f"Post-processing error: {e}"))
