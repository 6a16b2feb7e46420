"""Supervision of the game's process: its combined output is streamed line by line to the
watcher until the process exits.
"""

from subprocess import Popen, PIPE, STDOUT
from threading import Thread, Event
from pathlib import Path
from queue import Queue, Empty

from .event import Watcher, ProcessStartedEvent, ProcessOutputEvent, ProcessExitedEvent

from typing import Iterator, List, Optional


# Delay between two checks of the cancel event while waiting for a line.
POLL_INTERVAL = 0.2

_EOF = None


class GameProcess:
    """A running game process, its standard error is merged into its standard output.
    """

    def __init__(self, process: Popen) -> None:
        self._process = process
        self._consumed = False

    @classmethod
    def start(cls, args: List[str], work_dir: Path) -> "GameProcess":
        """Spawn the process with the given arguments, the first one being the executable,
        in the given working directory.

        :raises ProcessError: If the process can't be spawned.
        """
        try:
            process = Popen(args, cwd=work_dir, stdout=PIPE, stderr=STDOUT, bufsize=1,
                universal_newlines=True, encoding="utf-8", errors="replace")
        except (OSError, ValueError) as error:
            raise ProcessError(args, error)
        return cls(process)

    @property
    def pid(self) -> int:
        return self._process.pid

    def lines(self, cancel: Optional[Event] = None) -> Iterator[str]:
        """Yield the lines of output, without their line terminator, until the end of the
        stream or until the cancel event is set. The output can only be consumed once.
        """

        if self._consumed:
            raise RuntimeError("process output already consumed")
        self._consumed = True

        stdout = self._process.stdout
        assert stdout is not None, "should not be none because it should be piped"

        queue = Queue()
        thread = Thread(target=_stream_thread, name="Game Stream Thread", args=(stdout, queue), daemon=True)
        thread.start()

        while cancel is None or not cancel.is_set():
            try:
                line = queue.get(timeout=POLL_INTERVAL)
            except Empty:
                continue
            if line is _EOF:
                break
            yield line

    def poll(self) -> Optional[int]:
        return self._process.poll()

    def wait(self) -> int:
        return self._process.wait()

    def terminate(self) -> None:
        """Terminate the process if still running.
        """
        if self._process.poll() is None:
            self._process.terminate()

    def __repr__(self) -> str:
        return f"<GameProcess {self.pid}>"


def _stream_thread(stdout, queue: Queue) -> None:
    try:
        for line in iter(stdout.readline, ""):
            queue.put(line.rstrip("\r\n"))
    finally:
        queue.put(_EOF)


def supervise(process: GameProcess, watcher: Optional[Watcher] = None, cancel: Optional[Event] = None) -> int:
    """Forward every output line of the process to the watcher, then wait for the process
    to exit. If the cancel event is set, the process is terminated.

    :return: The exit code of the process.
    """

    watcher = watcher or Watcher()
    watcher.handle(ProcessStartedEvent(process.pid))

    try:
        for line in process.lines(cancel):
            watcher.handle(ProcessOutputEvent(line))
        if cancel is not None and cancel.is_set():
            process.terminate()
    except KeyboardInterrupt:
        process.terminate()
        raise
    finally:
        exit_code = process.wait()

    watcher.handle(ProcessExitedEvent(exit_code))
    return exit_code


class ProcessError(Exception):
    """Raised when the game's process can't be spawned, the arguments and the original
    error are given.
    """
    def __init__(self, args: List[str], reason: Exception) -> None:
        super().__init__(args, reason)
        self.args_list = args
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.args_list[0] if len(self.args_list) else '<empty>'}: {self.reason}"
