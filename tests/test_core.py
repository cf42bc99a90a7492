import pytest

from batch_fbx_merger.core import (
    CapabilityError,
    HostResult,
    ObjectKind,
    ProgressEvent,
    SceneHost,
    IMPORT_CAPABILITIES,
    kind_from_type,
    missing_capabilities,
    require_capabilities,
)

from conftest import FakeHost


class PartialHost(SceneHost):
    def reset_scene(self):
        pass

    object_count = None


def test_host_result_truthiness():
    assert HostResult.success(5)
    assert HostResult.success(5).value == 5
    failed = HostResult.failure(ValueError("bad file"))
    assert not failed
    assert failed.reason == "bad file"


def test_host_result_failure_never_has_empty_reason():
    assert HostResult.failure("").reason == "Unknown error"


def test_progress_fraction_is_clamped():
    assert ProgressEvent("import", 2, 4).fraction == 0.5
    assert ProgressEvent("import", 9, 4).fraction == 1.0
    assert ProgressEvent("import", 0, 0).fraction == 1.0


@pytest.mark.parametrize("type_name, kind", [
    ("MESH", ObjectKind.MESH),
    ("META", ObjectKind.GEOMETRY),
    ("LIGHT", ObjectKind.LIGHT),
    ("CAMERA", ObjectKind.CAMERA),
    ("EMPTY", ObjectKind.DUMMY),
    ("CURVE", ObjectKind.CURVE),
    ("SURFACE", ObjectKind.NURBS),
    ("FONT", ObjectKind.SHAPE),
    ("ARMATURE", ObjectKind.OTHER),
    ("GREASEPENCIL", ObjectKind.OTHER),
])
def test_kind_from_type(type_name, kind):
    assert kind_from_type(type_name) is kind


def test_missing_capabilities_lists_stubs_and_non_callables():
    missing = missing_capabilities(PartialHost(), IMPORT_CAPABILITIES)
    assert missing == ["object_count", "import_file"]


def test_full_host_has_every_capability():
    assert missing_capabilities(FakeHost(), IMPORT_CAPABILITIES) == []


def test_require_capabilities_enumerates_missing_routines():
    with pytest.raises(CapabilityError) as excinfo:
        require_capabilities(PartialHost(), ["reset_scene", "import_file",
                                             "save_as", "import_file"])
    assert excinfo.value.missing == ["import_file", "save_as"]
    assert "import_file, save_as" in str(excinfo.value)
