import pytest

from batch_fbx_merger.core import SceneHost, HostResult, ObjectKind


class FakeMaterial:
    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return f"FakeMaterial({self.name!r})"


class FakeObject:
    def __init__(self, name, kind=ObjectKind.MESH, material=None):
        self.name = name
        self.kind = kind
        self.material = material
        self.attached = []

    def __repr__(self):
        return f"FakeObject({self.name!r}, {self.kind.name})"


class FakeHost(SceneHost):
    """In-memory scene standing in for Blender.

    ``files`` maps a path to the objects importing it creates, or to an
    exception instance that the import should raise.
    """

    def __init__(self, objects=None, files=None):
        self.objects = list(objects or [])
        self.selection = []
        self.files = dict(files or {})
        self.imported = []
        self.saved = []
        self.resets = 0
        self.fail_convert = set()
        self.fail_attach = set()
        self.raise_attach = set()
        self.fail_delete = False
        self.attach_calls = 0

    def reset_scene(self):
        self.resets += 1
        self.objects = []
        self.selection = []

    def object_count(self):
        return len(self.objects)

    def import_file(self, path):
        self.imported.append(path)
        payload = self.files.get(path, [])
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, HostResult):
            return payload
        self.objects.extend(factory() for factory in payload)
        return HostResult.success()

    def all_objects(self):
        return list(self.objects)

    def selected_objects(self):
        return list(self.selection)

    def object_kind(self, obj):
        return obj.kind

    def object_name(self, obj):
        return obj.name

    def material_of(self, obj):
        return obj.material

    def material_name(self, material):
        return material.name

    def delete_objects(self, objects):
        if self.fail_delete:
            return HostResult.failure("scene is locked")
        doomed = set(map(id, objects))
        self.objects = [obj for obj in self.objects if id(obj) not in doomed]
        return HostResult.success()

    def convert_to_mesh(self, obj):
        if obj.name in self.fail_convert:
            return HostResult.failure("cannot convert")
        obj.kind = ObjectKind.MESH
        return HostResult.success(obj)

    def attach(self, target, source):
        self.attach_calls += 1
        if source.name in self.raise_attach:
            raise RuntimeError("join exploded")
        if source.name in self.fail_attach:
            return HostResult.failure("incompatible")
        target.attached.append(source)
        self.objects = [obj for obj in self.objects if obj is not source]
        return HostResult.success(target)

    def rename(self, obj, name):
        obj.name = name

    def assign_material(self, obj, material):
        obj.material = material

    def select_objects(self, objects):
        self.selection = list(objects)

    def save_as(self, path):
        self.saved.append(path)
        return HostResult.success(path)


def make(name, kind=ObjectKind.MESH, material=None):
    """Factory for FakeHost.files payloads."""
    return lambda: FakeObject(name, kind, material)


@pytest.fixture
def host():
    return FakeHost()
