from pathlib import Path
import pytest


def test_replace_vars():

    from catclient.util import replace_vars

    assert replace_vars("${a} and ${b}", {"a": "1", "b": "2"}) == "1 and 2"
    assert replace_vars("${a}${a}", {"a": "x"}) == "xx"
    assert replace_vars("${unknown} stays", {"a": "1"}) == "${unknown} stays"
    assert replace_vars("no vars", {}) == "no vars"
    assert replace_vars("${a", {"a": "1"}) == "${a"


def test_offline_identity():

    from catclient.auth import OfflineIdentity

    first = OfflineIdentity("Steve", None)
    second = OfflineIdentity("Steve", None)
    assert first.username == "Steve"
    assert first.user_id == second.user_id
    assert len(first.user_id) == 32
    assert first.access_token == ""
    assert first.user_type == "mojang"

    assert OfflineIdentity("Alex", None).user_id != first.user_id
    assert OfflineIdentity("a" * 20, None).username == "a" * 16

    uuid = "069a79f4-44e9-4726-a5be-fca90e38aaf5"
    assert OfflineIdentity(None, uuid).username == "069a79f4"
    assert OfflineIdentity("Notch", uuid).uuid == "069a79f444e94726a5befca90e38aaf5"

    anonymous = OfflineIdentity(None, None)
    assert anonymous.username == anonymous.user_id[:8]


def test_launch_identity():

    from catclient.auth import LaunchIdentity

    identity = LaunchIdentity("Steve", "069a79f4-44e9-4726-a5be-fca90e38aaf5", "secret")
    assert identity.uuid == "069a79f444e94726a5befca90e38aaf5"
    assert "secret" not in repr(identity)


def test_context(tmp_path):

    from catclient.context import Context

    context = Context(tmp_path)
    assert context.work_dir == tmp_path
    assert context.versions_dir == tmp_path / "versions"
    assert context.assets_indexes_dir == tmp_path / "assets" / "indexes"
    assert context.assets_objects_dir == tmp_path / "assets" / "objects"
    assert context.libraries_dir == tmp_path / "libraries"
    assert context.get_natives_dir("1.20.1") == tmp_path / "natives" / "1.20.1"

    version = context.get_version("1.20.1")
    assert version.descriptor_file() == tmp_path / "versions" / "1.20.1" / "1.20.1.json"
    assert version.jar_file() == tmp_path / "versions" / "1.20.1" / "1.20.1.jar"
    assert not version.descriptor_exists()

    assert Context(tmp_path, tmp_path / "game").work_dir == tmp_path / "game"


def test_context_list_versions(tmp_path):

    from catclient.context import Context

    context = Context(tmp_path)
    assert list(context.list_versions()) == []

    installed = context.get_version("1.20.1")
    installed.dir.mkdir(parents=True)
    installed.descriptor_file().write_text("{}")
    (context.versions_dir / "empty").mkdir()
    (context.versions_dir / "file.json").write_text("{}")

    assert [version.id for version in context.list_versions()] == ["1.20.1"]


def test_get_main_dir():

    from catclient.util import get_main_dir

    main_dir = get_main_dir()
    assert isinstance(main_dir, Path)
    assert "catclient" in main_dir.name


def test_watcher_group():

    from catclient.event import WatcherGroup, SimpleWatcher, JarFoundEvent, JarFetchingEvent

    sizes = []
    group = WatcherGroup()
    watcher = SimpleWatcher({JarFoundEvent: lambda e: sizes.append(e.size)})
    group.add(watcher)
    group.add(SimpleWatcher({JarFoundEvent: lambda e: sizes.append(-e.size)}))

    group.handle(JarFoundEvent(10))
    group.handle(JarFetchingEvent())
    assert sorted(sizes) == [-10, 10]

    group.remove(watcher)
    group.handle(JarFoundEvent(3))
    assert sorted(sizes) == [-10, -3, 10]


@pytest.mark.parametrize("os_name, arch_bits, expected", [
    ("windows", 64, "natives-windows-64"),
    ("windows", 32, "natives-windows-32"),
    ("linux", 64, "natives-linux"),
    ("osx", 64, None),
])
def test_native_classifier(os_name, arch_bits, expected):

    from catclient.manifest import LibraryEntry

    entry = LibraryEntry.parse("""{
        "name": "org.lwjgl:lwjgl-platform:2.9.4",
        "natives": {"windows": "natives-windows-${arch}", "linux": "natives-linux"}
    }""")
    assert entry.native_classifier(os_name, arch_bits) == expected
