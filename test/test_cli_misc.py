from types import SimpleNamespace
from pathlib import Path
import pytest


def test_format_number():

    from catclient.cli.util import format_number, format_duration

    assert format_number(0) == "0"
    assert format_number(999) == "999"
    assert format_number(1000) == "1.0 k"
    assert format_number(999999) == "999.9 k"
    assert format_number(1000000) == "1.0 M"
    assert format_number(999999999) == "999.9 M"
    assert format_number(1000000000) == "1.0 G"
    assert format_number(1000000000000) == "1000.0 G"

    assert format_duration(0) == "0 s"
    assert format_duration(59) == "59 s"
    assert format_duration(60) == "1 m"
    assert format_duration(119) == "1 m"
    assert format_duration(3599) == "59 m"
    assert format_duration(3600) == "1 h"
    assert format_duration(7200) == "2 h"


def test_format_command():

    from catclient.cli.util import format_command

    assert format_command(["java", "-cp", "a b.jar", "Main"]) == 'java -cp "a b.jar" Main'
    assert format_command(["Main", "--accessToken", "0123456789abcdef", "--userType", "mojang"]) \
        == "Main --accessToken ******** --userType mojang"
    assert format_command(["Main", "--accessToken", "abc"]) == "Main --accessToken ***"
    assert format_command(["Main", "--accessToken", ""]) == "Main --accessToken "


def test_lang():

    from catclient.cli.lang import get, lang

    assert get("start.running", pid=42) == lang["start.running"].format(pid=42)
    assert get("unknown.key") == "unknown.key"
    # Missing formatting arguments give the key.
    assert get("start.running") == "start.running"

    for code in ("connection", "not_found", "cancelled", "redirect"):
        assert f"download.error.{code}" in lang


def test_register_arguments():

    from catclient.cli.parse import register_arguments
    from catclient.http import DEFAULT_TIMEOUT

    parser = register_arguments()

    ns = parser.parse_args(["--main-dir", "/tmp/mc", "-vv", "start", "--dry", "-u", "Steve",
        "--jvm-args=-Xmx4G -Xms1G", "1.20.1"])
    assert ns.main_dir == Path("/tmp/mc")
    assert ns.work_dir is None
    assert ns.timeout == DEFAULT_TIMEOUT
    assert ns.verbose == 2
    assert ns.out_kind == "human-color"
    assert ns.subcommand == "start"
    assert ns.dry
    assert ns.username == "Steve"
    assert ns.uuid is None and ns.token is None and ns.jvm is None
    assert ns.jvm_args == "-Xmx4G -Xms1G"
    assert ns.version == "1.20.1"

    ns = parser.parse_args(["--output", "machine", "search", "-l", "1.20"])
    assert ns.out_kind == "machine"
    assert ns.subcommand == "search"
    assert ns.local and ns.input == "1.20"

    ns = parser.parse_args(["show", "about"])
    assert ns.show_subcommand == "about"

    with pytest.raises(SystemExit):
        parser.parse_args(["--output", "xml", "search"])


def test_get_identity():

    from catclient.cli import get_identity
    from catclient.auth import OfflineIdentity

    ns = SimpleNamespace(username="Steve", uuid=None, token=None)
    identity = get_identity(ns)
    assert isinstance(identity, OfflineIdentity)
    assert identity.username == "Steve"
    assert identity.access_token == ""

    ns.token = "token"
    identity = get_identity(ns)
    assert not isinstance(identity, OfflineIdentity)
    assert identity.username == "Steve"
    assert identity.user_id == OfflineIdentity("Steve", None).user_id
    assert identity.access_token == "token"


def test_get_output():

    from catclient.cli import get_output
    from catclient.cli.output import HumanOutput, MachineOutput

    assert isinstance(get_output("human"), HumanOutput)
    assert isinstance(get_output("machine"), MachineOutput)
    with pytest.raises(ValueError):
        get_output("xml")


def test_main_show_about(capsys):

    from catclient.cli import main, EXIT_OK
    from catclient import LAUNCHER_VERSION

    with pytest.raises(SystemExit) as exit_info:
        main(["show", "about"])
    assert exit_info.value.code == EXIT_OK
    assert f"Version: {LAUNCHER_VERSION}" in capsys.readouterr().out


def test_main_search_local(tmp_path, capsys):

    from catclient.cli import main, EXIT_OK
    from catclient.context import Context

    version = Context(tmp_path).get_version("1.20.1")
    version.dir.mkdir(parents=True)
    version.descriptor_file().write_text("{}")

    with pytest.raises(SystemExit) as exit_info:
        main(["--main-dir", str(tmp_path), "--output", "machine", "search", "--local"])
    assert exit_info.value.code == EXIT_OK

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "table:3"
    assert lines[-1] == "row:1.20.1"


def test_start_watcher(capsys):

    from catclient.cli import StartWatcher
    from catclient.cli.output import MachineOutput
    from catclient.event import StatusEvent, JarFoundEvent, AssetErrorEvent, ProcessOutputEvent, \
        ProcessExitedEvent, CommandBuiltEvent

    ns = SimpleNamespace(out=MachineOutput(), verbose=1)
    watcher = StartWatcher(ns)

    watcher.handle(JarFoundEvent(2048))
    watcher.handle(AssetErrorEvent("abcd", "not_found", None))
    watcher.handle(CommandBuiltEvent(["java", "--accessToken", "secret"]))
    watcher.handle(StatusEvent(StatusEvent.RUNNING, 1234))
    watcher.handle(ProcessOutputEvent("hello"))
    watcher.handle(ProcessExitedEvent(0))
    watcher.handle(StatusEvent(StatusEvent.CANCELLED))

    out = capsys.readouterr().out
    assert "task:OK,start.jar.found,size=2.0 k" in out
    assert "task:WARN,start.assets.error,name=abcd,message=" in out
    assert "secret" not in out
    assert "task:OK,start.running,pid=1234" in out
    assert "print:[MC] hello\\n" in out
    assert "task:INFO,start.exited,code=0,duration=0 s" in out
    assert "task:HALT,start.cancelled" in out
