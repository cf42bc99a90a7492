import os

import pytest

from batch_fbx_merger.core import CapabilityError, HostResult, ObjectKind, ValidationError
from batch_fbx_merger.importer import (
    BatchImporter,
    ImportOptions,
    SortMode,
    SourceMode,
    collect_files,
    find_fbx_files,
    output_path_for,
    sort_files,
)

from conftest import FakeHost, FakeMaterial, make


WOOD = FakeMaterial("Wood")
METAL = FakeMaterial("Metal")


def furniture():
    return [
        make("Chair_Leg_1", material=WOOD),
        make("Chair_Leg_2", material=WOOD),
        make("Chair_Screw", material=METAL),
        make("Key_Light", ObjectKind.LIGHT),
        make("Render_Cam", ObjectKind.CAMERA),
        make("Null", ObjectKind.HELPER),
    ]


def no_post_processing(**overrides):
    settings = dict(clean_after_import=False, merge_after_clean=False,
                    save_cleaned_files=False)
    settings.update(overrides)
    return ImportOptions(**settings)


# --- Sorting ---

def test_alphabetical_sort_ignores_case():
    paths = ["/in/beta.fbx", "/in/Alpha.fbx", "/in/gamma.FBX", "/in/ALPHA2.fbx"]
    assert sort_files(paths, SortMode.ALPHABETICAL) == [
        "/in/Alpha.fbx", "/in/ALPHA2.fbx", "/in/beta.fbx", "/in/gamma.FBX",
    ]


def test_size_sorts_are_stable():
    sizes = {"a": 30, "b": 10, "c": 20, "d": 10}
    paths = ["a", "b", "c", "d"]
    assert sort_files(paths, SortMode.SIZE_ASCENDING, sizes.get) == ["b", "d", "c", "a"]
    assert sort_files(paths, SortMode.SIZE_DESCENDING, sizes.get) == ["a", "c", "b", "d"]


def test_size_sort_reads_file_lengths(tmp_path):
    for name, size in (("big.fbx", 300), ("small.fbx", 10), ("mid.fbx", 120)):
        (tmp_path / name).write_bytes(b"x" * size)
    paths = [str(tmp_path / name) for name in ("big.fbx", "small.fbx", "mid.fbx")]

    ordered = sort_files(paths, SortMode.SIZE_ASCENDING)
    assert [os.path.basename(p) for p in ordered] == ["small.fbx", "mid.fbx", "big.fbx"]


def test_unsorted_mode_keeps_order_and_copies():
    paths = ["z.fbx", "a.fbx"]
    result = sort_files(paths, SortMode.NONE)
    assert result == paths
    assert result is not paths


# --- File discovery ---

def test_find_fbx_files_filters_by_extension(tmp_path):
    for name in ("one.fbx", "two.FBX", "notes.txt", "three.obj"):
        (tmp_path / name).write_text("")
    (tmp_path / "nested.fbx").mkdir()

    found = sorted(os.path.basename(p) for p in find_fbx_files(str(tmp_path)))
    assert found == ["one.fbx", "two.FBX"]


def test_missing_directory_is_a_validation_error(tmp_path):
    with pytest.raises(ValidationError):
        find_fbx_files(str(tmp_path / "nope"))


def test_collect_files_requires_a_directory_choice():
    with pytest.raises(ValidationError, match="No source directory"):
        collect_files(ImportOptions(), directory="")


def test_collect_files_rejects_empty_folder(tmp_path):
    with pytest.raises(ValidationError, match="No FBX files found"):
        collect_files(ImportOptions(), directory=str(tmp_path))


def test_collect_files_in_files_mode_keeps_only_fbx():
    options = ImportOptions(source_mode=SourceMode.FILES)
    assert collect_files(options, files=["a.fbx", "b.png"]) == ["a.fbx"]


def test_output_path_is_a_sibling_with_new_extension():
    path = os.path.join("assets", "props", "crate.fbx")
    assert output_path_for(path) == os.path.join("assets", "props", "crate.blend")


# --- Import loop ---

def test_counters_add_up_with_mixed_outcomes():
    host = FakeHost(files={
        "ok.fbx": [make("Box")],
        "empty.fbx": [],
        "broken.fbx": RuntimeError("Corrupt FBX header"),
        "refused.fbx": HostResult.failure("ASCII FBX not supported"),
        "ok2.fbx": [make("Ball")],
    })
    status = BatchImporter(host, list(host.files), no_post_processing()).run()

    assert status.success_count == 2
    assert status.failed_count == 3
    assert status.success_count + status.failed_count == status.processed == 5
    reasons = dict(status.failures)
    assert reasons["broken.fbx"] == "Corrupt FBX header"
    assert reasons["refused.fbx"] == "ASCII FBX not supported"
    assert reasons["empty.fbx"] == "No objects were imported"
    assert status.finished and not status.is_cancelled


def test_workspace_is_reset_before_every_file():
    host = FakeHost(files={"a.fbx": [make("A")], "b.fbx": [make("B")]})
    BatchImporter(host, ["a.fbx", "b.fbx"], no_post_processing()).run()

    assert host.resets == 2
    assert [obj.name for obj in host.objects] == ["B"]


def test_files_are_processed_in_sorted_order():
    host = FakeHost(files={name: [make("X")] for name in ("b.fbx", "C.fbx", "a.fbx")})
    BatchImporter(host, ["b.fbx", "C.fbx", "a.fbx"], no_post_processing()).run()
    assert host.imported == ["a.fbx", "b.fbx", "C.fbx"]


def test_end_to_end_clean_merge_and_save():
    files = {f"/in/{name}.fbx": furniture() for name in ("table", "Chair", "bench")}
    host = FakeHost(files=files)
    selections = []

    def on_progress(event):
        if event.stage == "import":
            selections.append(list(host.selection))

    status = BatchImporter(host, list(files), ImportOptions(), on_progress=on_progress).run()

    assert status.success_count == 3
    assert status.failed_count == 0
    assert status.warnings == []
    assert host.imported == ["/in/bench.fbx", "/in/Chair.fbx", "/in/table.fbx"]
    assert host.saved == ["/in/bench.blend", "/in/Chair.blend", "/in/table.blend"]
    for selection in selections:
        assert sorted(obj.name for obj in selection) == ["Merged_Metal", "Merged_Wood"]
        assert all(obj.kind not in (ObjectKind.LIGHT, ObjectKind.CAMERA, ObjectKind.HELPER)
                   for obj in selection)
    assert len(status.merge_reports) == 3


def test_merge_without_clean_uses_whole_scene():
    host = FakeHost(files={"room.fbx": furniture()})
    options = no_post_processing(merge_after_clean=True)
    status = BatchImporter(host, ["room.fbx"], options).run()

    [(_, report)] = status.merge_reports
    assert sorted(obj.name for obj in report.results) == ["Merged_Metal", "Merged_Wood"]
    assert any(obj.kind is ObjectKind.LIGHT for obj in host.objects)


def test_post_processing_problems_do_not_change_counters():
    host = FakeHost(files={"lights_only.fbx": [make("Sun", ObjectKind.LIGHT)]})
    status = BatchImporter(host, ["lights_only.fbx"],
                           ImportOptions(save_cleaned_files=False)).run()

    assert status.success_count == 1
    assert status.failed_count == 0
    assert status.warnings == [("lights_only.fbx", "No objects to merge")]


def test_cancel_after_second_file_stops_before_third():
    names = [f"file{i}.fbx" for i in range(1, 6)]
    host = FakeHost(files={name: [make("Obj")] for name in names})
    cancel = {"flag": False}

    def on_progress(event):
        if event.stage == "import" and event.current == 2:
            cancel["flag"] = True

    importer = BatchImporter(host, names, no_post_processing(),
                             on_progress=on_progress,
                             should_cancel=lambda: cancel["flag"])
    status = importer.run()

    assert status.is_cancelled
    assert host.imported == ["file1.fbx", "file2.fbx"]
    assert status.success_count == 2
    assert status.processed == 2
    message, overall_success = status.summary()
    assert "cancelled" in message
    assert not overall_success


def test_step_processes_one_file_at_a_time():
    host = FakeHost(files={"a.fbx": [make("A")], "b.fbx": [make("B")]})
    importer = BatchImporter(host, ["a.fbx", "b.fbx"], no_post_processing())

    assert importer.step() is True
    assert host.imported == ["a.fbx"]
    assert importer.step() is False
    assert importer.finished
    assert importer.step() is False
    assert host.imported == ["a.fbx", "b.fbx"]


def test_missing_host_routines_abort_before_any_import():
    class ImportOnlyHost(FakeHost):
        save_as = None

    host = ImportOnlyHost(files={"a.fbx": [make("A")]})
    with pytest.raises(CapabilityError) as excinfo:
        BatchImporter(host, ["a.fbx"], ImportOptions())
    assert excinfo.value.missing == ["save_as"]
    assert host.imported == []


def test_summary_lists_failed_files():
    host = FakeHost(files={"bad.fbx": RuntimeError("boom")})
    status = BatchImporter(host, ["/x/bad.fbx", "bad.fbx"], no_post_processing()).run()
    message, overall_success = status.summary()

    assert not overall_success
    assert "0 succeeded, 2 failed" in message
    assert "bad.fbx" in message


def test_merged_names_survive_a_later_failed_import():
    wood = FakeMaterial("Wood")
    host = FakeHost(files={
        "a.fbx": [make("plank_1", material=wood), make("plank_2", material=wood)],
        "b.fbx": RuntimeError("corrupt"),
    })
    options = ImportOptions(save_cleaned_files=False)
    status = BatchImporter(host, ["a.fbx", "b.fbx"], options).run()

    assert host.objects == []
    [(path, report)] = status.merge_reports
    assert path == "a.fbx"
    assert [group.result_name for group in report.groups] == ["Merged_Wood"]
    assert status.scene_merge_report() is None


def test_scene_merge_report_belongs_to_last_file():
    wood = FakeMaterial("Wood")
    host = FakeHost(files={
        "a.fbx": RuntimeError("corrupt"),
        "b.fbx": [make("plank_1", material=wood), make("plank_2", material=wood)],
    })
    options = ImportOptions(save_cleaned_files=False)
    status = BatchImporter(host, ["a.fbx", "b.fbx"], options).run()

    report = status.scene_merge_report()
    assert report is status.merge_reports[-1][1]
    assert [obj.name for obj in host.objects] == ["Merged_Wood"]
