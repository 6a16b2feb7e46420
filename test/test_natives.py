from zipfile import ZipFile

from catclient.natives import extract_natives, extract_archive, ArchiveError
from catclient.event import NativesErrorEvent, NativesExtractedEvent

import pytest


def make_jar(path, entries: dict):
    path.parent.mkdir(parents=True, exist_ok=True)
    with ZipFile(path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


def test_extract_natives(tmp_path, recorder):

    libs = tmp_path / "libraries"
    natives_dir = tmp_path / "natives" / "1.8.9"

    first = make_jar(libs / "lwjgl-platform-natives-linux.jar", {
        "META-INF/MANIFEST.MF": "Manifest-Version: 1.0",
        "liblwjgl64.so": b"first-lwjgl",
        "linux/x64/libopenal.so": b"openal",
        "lwjgl.dll": b"dll",
        "macos/libglfw.dylib": b"dylib",
        "libjinput.jnilib": b"jnilib",
        "README.txt": "readme",
    })
    second = make_jar(libs / "other-natives-linux.jar", {
        "liblwjgl64.so": b"second-lwjgl",
    })
    classes = make_jar(libs / "lwjgl.jar", {
        "libignored.so": b"not a natives jar",
    })
    missing = libs / "missing-natives-linux.jar"

    extracted = extract_natives([first, second, classes, missing], natives_dir, recorder)

    assert sorted(path.name for path in extracted) == [
        "libglfw.dylib", "libjinput.jnilib", "liblwjgl64.so", "libopenal.so", "lwjgl.dll"]
    assert sorted(path.name for path in natives_dir.iterdir()) == sorted(path.name for path in extracted)

    # First writer wins.
    assert (natives_dir / "liblwjgl64.so").read_bytes() == b"first-lwjgl"
    assert (natives_dir / "libopenal.so").read_bytes() == b"openal"
    assert not (natives_dir / "libignored.so").exists()
    assert recorder.of(NativesExtractedEvent)[0].count == 5
    assert not recorder.of(NativesErrorEvent)


def test_extract_natives_idempotent(tmp_path):

    natives_dir = tmp_path / "natives"
    jar = make_jar(tmp_path / "a-natives-linux.jar", {"liba.so": b"a"})

    assert len(extract_natives([jar], natives_dir)) == 1
    (natives_dir / "liba.so").write_bytes(b"modified")
    assert extract_natives([jar], natives_dir) == []
    assert (natives_dir / "liba.so").read_bytes() == b"modified"


def test_extract_natives_bad_archive(tmp_path, recorder):

    natives_dir = tmp_path / "natives"
    bad = tmp_path / "bad-natives-linux.jar"
    bad.write_bytes(b"this is not a zip file")
    good = make_jar(tmp_path / "good-natives-linux.jar", {"libgood.so": b"good"})

    extracted = extract_natives([bad, good], natives_dir, recorder)
    assert [path.name for path in extracted] == ["libgood.so"]

    errors = recorder.of(NativesErrorEvent)
    assert len(errors) == 1
    assert errors[0].path == bad
    assert isinstance(errors[0].error, ArchiveError)

    with pytest.raises(ArchiveError):
        extract_archive(bad, natives_dir)


def test_extract_natives_partial_copy(tmp_path, recorder, monkeypatch):

    natives_dir = tmp_path / "natives"
    jar = make_jar(tmp_path / "a-natives-linux.jar", {"liba.so": b"complete"})

    def failing_copy(src_fp, dst_fp, *args):
        dst_fp.write(b"part")
        raise OSError("disk full")

    monkeypatch.setattr("catclient.natives.shutil.copyfileobj", failing_copy)
    assert extract_natives([jar], natives_dir, recorder) == []
    assert isinstance(recorder.of(NativesErrorEvent)[0].error, ArchiveError)
    assert not (natives_dir / "liba.so").exists()

    monkeypatch.undo()
    assert len(extract_natives([jar], natives_dir)) == 1
    assert (natives_dir / "liba.so").read_bytes() == b"complete"
