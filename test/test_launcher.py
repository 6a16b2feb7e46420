from concurrent.futures import Future
from threading import Event
from zipfile import ZipFile
from io import BytesIO
import pytest

from catclient import assets
from catclient.launcher import Launcher, PipelineState, VersionBusyError
from catclient.manifest import VersionManifest, VersionNotFoundError, ParseError
from catclient.auth import OfflineIdentity
from catclient.event import StatusEvent, ProgressEvent, ManifestFetchingEvent, ManifestFetchedEvent, \
    JarFetchingEvent, JarFoundEvent, CommandBuiltEvent, LaunchFailedEvent, NativesExtractedEvent, \
    AssetsCompleteEvent, SimpleWatcher


HASH_A = "bdf48ef6b5d0d23bbb02e17d04865216179f510a"
NO_JAVA = "catclient-no-such-java"


def natives_zip() -> bytes:
    buf = BytesIO()
    with ZipFile(buf, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0")
        zf.writestr("libtest.so", b"native")
    return buf.getvalue()


def setup_server(http_server, monkeypatch) -> str:
    """Serve a complete release on the local server and return the manifest URL.
    """

    monkeypatch.setattr(assets, "RESOURCES_URL", http_server.url("/resources/"))
    http_server.add(f"/resources/bd/{HASH_A}", b"asset")

    index_url = http_server.add("/indexes/5.json", f'{{"objects": {{"a": {{"hash": "{HASH_A}", "size": 5}}}}}}')
    jar_url = http_server.add("/client.jar", b"client-jar")
    lib_url = http_server.add("/lib.jar", b"lib")
    natives_url = http_server.add("/lib-natives.jar", natives_zip())

    descriptor_url = http_server.add("/1.20.1.json", f"""{{
        "id": "1.20.1",
        "type": "release",
        "mainClass": "net.minecraft.client.main.Main",
        "assetIndex": {{"id": "5", "url": "{index_url}"}},
        "downloads": {{"client": {{"url": "{jar_url}"}}}},
        "libraries": [
            {{
                "name": "com.example:lib:1.0",
                "downloads": {{
                    "artifact": {{"path": "com/example/lib/1.0/lib-1.0.jar", "url": "{lib_url}"}},
                    "classifiers": {{
                        "natives-test": {{"path": "com/example/lib/1.0/lib-1.0-natives-test.jar", "url": "{natives_url}"}}
                    }}
                }},
                "natives": {{"linux": "natives-test", "osx": "natives-test", "windows": "natives-test"}}
            }}
        ]
    }}""")

    no_jar_url = http_server.add("/nojar.json", '{"id": "nojar", "type": "release"}')

    return http_server.add("/manifest.json", f"""{{
        "versions": [
            {{"id": "1.20.1", "type": "release", "url": "{descriptor_url}"}},
            {{"id": "23w31a", "type": "snapshot", "url": "{descriptor_url}"}},
            {{"id": "nojar", "type": "release", "url": "{no_jar_url}"}}
        ]
    }}""")


@pytest.fixture
def launcher(http_server, monkeypatch, tmp_context):
    url = setup_server(http_server, monkeypatch)
    launcher = Launcher(tmp_context, VersionManifest(url=url), jvm_path=NO_JAVA)
    yield launcher
    launcher.shutdown()


def test_refresh_versions(launcher, recorder):

    releases = launcher.refresh_versions(recorder)
    assert [version.id for version in releases] == ["1.20.1", "nojar"]

    assert len(recorder.of(ManifestFetchingEvent)) == 1
    fetched = recorder.of(ManifestFetchedEvent)[0]
    assert (fetched.count, fetched.release_count, fetched.cached) == (3, 2, False)


def test_run_dry(launcher, tmp_context, http_server, recorder):

    identity = OfflineIdentity("Steve", None)
    state = launcher.run("1.20.1", identity, recorder, dry=True)

    assert isinstance(state, PipelineState)
    assert state.descriptor.id == "1.20.1"
    assert state.jar_path == tmp_context.versions_dir / "1.20.1" / "1.20.1.jar"
    assert state.jar_path.read_bytes() == b"client-jar"
    assert state.lib_paths == [
        tmp_context.libraries_dir / "com/example/lib/1.0/lib-1.0.jar",
        tmp_context.libraries_dir / "com/example/lib/1.0/lib-1.0-natives-test.jar",
    ]
    assert (state.natives_dir / "libtest.so").read_bytes() == b"native"
    assert tmp_context.asset_object_file(HASH_A).read_bytes() == b"asset"
    assert state.process is None and state.exit_code is None

    args = state.command.args()
    assert args[0] == NO_JAVA
    assert "net.minecraft.client.main.Main" in args
    assert args[args.index("--username") + 1] == "Steve"
    assert args[args.index("--uuid") + 1] == identity.uuid
    assert args[args.index("--assetIndex") + 1] == "5"
    assert recorder.of(CommandBuiltEvent)[0].args == args

    assert [event.percent for event in recorder.of(ProgressEvent)] == [10, 20, 55, 65, 75, 90, 0]
    assert [event.status for event in recorder.of(StatusEvent)] == [StatusEvent.PREPARING, StatusEvent.READY]
    assert len(recorder.of(JarFetchingEvent)) == 1
    assert recorder.of(JarFoundEvent)[0].size == len(b"client-jar")
    assert recorder.of(NativesExtractedEvent)[0].count == 1
    assert recorder.of(AssetsCompleteEvent)[0].fetched_count == 1
    assert not launcher.is_busy("1.20.1")

    # A second run finds everything in place.
    launcher.run("1.20.1", identity, dry=True)
    assert http_server.count("/client.jar") == 1
    assert http_server.count("/1.20.1.json") == 1
    assert http_server.count(f"/resources/bd/{HASH_A}") == 1


def test_run_version_not_found(launcher, recorder):

    with pytest.raises(VersionNotFoundError) as error:
        launcher.run("0.0.0", OfflineIdentity(None, None), recorder, dry=True)
    assert error.value.version == "0.0.0"

    assert recorder.of(LaunchFailedEvent)[0].error is error.value
    assert [event.status for event in recorder.of(StatusEvent)] == [StatusEvent.PREPARING, StatusEvent.FAILED]
    assert not launcher.is_busy("0.0.0")

    # The launcher is still usable after a failure.
    assert launcher.run("1.20.1", OfflineIdentity(None, None), dry=True).command is not None


def test_run_legacy_jar_url(launcher, http_server, monkeypatch, recorder):

    monkeypatch.setattr("catclient.launcher.LEGACY_JAR_URL", http_server.url("/legacy/{id}/{id}.jar"))

    # Neither the descriptor nor the legacy location provide the JAR.
    with pytest.raises(ParseError):
        launcher.run("nojar", OfflineIdentity(None, None), recorder, dry=True)
    assert isinstance(recorder.of(LaunchFailedEvent)[0].error, ParseError)
    assert http_server.count("/legacy/nojar/nojar.jar") == 1

    http_server.add("/legacy/nojar/nojar.jar", b"legacy-jar")
    state = launcher.run("nojar", OfflineIdentity(None, None), dry=True)
    assert state.jar_path.read_bytes() == b"legacy-jar"

    args = state.command.args()
    assert args[args.index("--assetIndex") + 1] == "legacy"


def test_run_cancelled(launcher, tmp_context, recorder):

    cancel = Event()
    cancel.set()
    state = launcher.run("1.20.1", OfflineIdentity(None, None), recorder, cancel=cancel)

    assert state.natives_dir is None and state.command is None and state.process is None
    assert not tmp_context.asset_object_file(HASH_A).exists()
    assert [event.percent for event in recorder.of(ProgressEvent)] == [10, 20, 55, 65, 0]
    assert [event.status for event in recorder.of(StatusEvent)] == [StatusEvent.PREPARING, StatusEvent.CANCELLED]
    assert not recorder.of(CommandBuiltEvent)
    assert not launcher.is_busy("1.20.1")


def test_run_busy(launcher):

    inner_errors = []

    def on_status(event):
        if event.status == StatusEvent.PREPARING:
            assert launcher.is_busy("0.0.0")
            try:
                launcher.run("0.0.0", OfflineIdentity(None, None))
            except VersionBusyError as error:
                inner_errors.append(error)

    with pytest.raises(VersionNotFoundError):
        launcher.run("0.0.0", OfflineIdentity(None, None), SimpleWatcher({StatusEvent: on_status}))

    assert len(inner_errors) == 1
    assert inner_errors[0].version == "0.0.0"
    assert str(inner_errors[0]) == "'0.0.0'"
    assert not launcher.is_busy("0.0.0")


def test_launch_future(launcher, recorder):

    future = launcher.launch("1.20.1", OfflineIdentity(None, None), recorder, dry=True)
    assert isinstance(future, Future)
    state = future.result(timeout=30)
    assert state.command is not None

    future = launcher.launch("0.0.0", OfflineIdentity(None, None), dry=True)
    with pytest.raises(VersionNotFoundError):
        future.result(timeout=30)
