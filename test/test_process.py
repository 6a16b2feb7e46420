from threading import Event
import sys
import pytest

from catclient.process import GameProcess, ProcessError, supervise
from catclient.event import ProcessStartedEvent, ProcessOutputEvent, ProcessExitedEvent, SimpleWatcher


SCRIPT = """
import sys
print("first line")
print("error line", file=sys.stderr, flush=True)
print("last line")
sys.exit(3)
"""


def test_supervise(tmp_path, recorder):

    process = GameProcess.start([sys.executable, "-c", SCRIPT], tmp_path)
    assert process.pid > 0

    assert supervise(process, recorder) == 3

    assert recorder.of(ProcessStartedEvent)[0].pid == process.pid
    lines = [event.line for event in recorder.of(ProcessOutputEvent)]
    assert lines == ["first line", "error line", "last line"]
    assert str(recorder.of(ProcessOutputEvent)[0]) == "[MC] first line"
    assert recorder.of(ProcessExitedEvent)[0].exit_code == 3


def test_lines_consumed_once(tmp_path):

    process = GameProcess.start([sys.executable, "-c", "print('hello')"], tmp_path)
    assert list(process.lines()) == ["hello"]
    assert process.wait() == 0

    with pytest.raises(RuntimeError):
        list(process.lines())


def test_supervise_cancel(tmp_path):

    script = "import time\nprint('started', flush=True)\ntime.sleep(60)\n"
    process = GameProcess.start([sys.executable, "-c", script], tmp_path)

    cancel = Event()
    watcher = SimpleWatcher({ProcessOutputEvent: lambda e: cancel.set()})

    exit_code = supervise(process, watcher, cancel)
    assert exit_code != 0
    assert process.poll() is not None


def test_start_error(tmp_path):
    with pytest.raises(ProcessError) as error:
        GameProcess.start(["catclient-no-such-executable"], tmp_path)
    assert isinstance(error.value.reason, OSError)
