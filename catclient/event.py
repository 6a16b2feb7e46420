"""Watchers and events emitted by the installation and launch stages. The core never
prints anything, every progress, log line or status change is given as an event object
to the watcher of the current launch attempt.
"""

from pathlib import Path

from typing import Any, Callable, Dict, List, Optional, Set


class Watcher:
    """Base class for a watcher of the install process.
    """

    def handle(self, event: Any) -> None:
        """Called when the watcher can handle the given event. Default implementation
        does nothing.
        """


class WatcherGroup(Watcher):
    """A group of watcher that is itself a watcher, its functions dispatches events to
    all children.
    """

    def __init__(self) -> None:
        self.children: Set[Watcher] = set()

    def add(self, watcher: Watcher) -> None:
        """Add a watcher to this group.
        """
        self.children.add(watcher)

    def remove(self, watcher: Watcher) -> None:
        """Remove a watcher from the group.
        """
        self.children.remove(watcher)

    def handle(self, event: Any) -> None:
        for watcher in self.children:
            watcher.handle(event)


class SimpleWatcher(Watcher):
    """A watcher dispatching events to the handler registered for their exact type.
    """

    def __init__(self, handlers: Dict[type, Callable[[Any], None]]) -> None:
        self.handlers = handlers

    def handle(self, event: Any) -> None:
        handler = self.handlers.get(type(event))
        if handler is not None:
            handler(event)


class StatusEvent:
    """Event triggered when the user-visible status of the launcher changes.
    """

    READY = "ready"
    PREPARING = "preparing"
    RUNNING = "running"
    FAILED = "failed"
    CANCELLED = "cancelled"

    __slots__ = "status", "pid"
    def __init__(self, status: str, pid: Optional[int] = None) -> None:
        self.status = status
        self.pid = pid

class ProgressEvent:
    """Coarse progress of the whole launch attempt, in percent.
    """
    __slots__ = "percent",
    def __init__(self, percent: int) -> None:
        self.percent = percent

class ManifestFetchingEvent:
    __slots__ = tuple()

class ManifestFetchedEvent:
    """Event triggered when the version manifest has been fetched, the number of release
    versions offered for selection is given.
    """
    __slots__ = "count", "release_count", "cached"
    def __init__(self, count: int, release_count: int, cached: bool) -> None:
        self.count = count
        self.release_count = release_count
        self.cached = cached


class VersionEvent:
    """Base class for events regarding version.
    """
    __slots__ = "version",
    def __init__(self, version: str) -> None:
        self.version = version

class VersionLoadingEvent(VersionEvent):
    """Event triggered when a version is being loaded.
    """
    __slots__ = tuple()

class VersionFetchingEvent(VersionEvent):
    """Event triggered when a version's descriptor is being fetched.
    """
    __slots__ = tuple()

class VersionLoadedEvent(VersionEvent):
    """Event triggered when a version has been successfully loaded.
    """
    __slots__ = "fetched",
    def __init__(self, version: str, fetched: bool) -> None:
        super().__init__(version)
        self.fetched = fetched


class JarFetchingEvent:
    __slots__ = tuple()

class JarFoundEvent:
    """Event triggered when the game's JAR file is present, its size is given.
    """
    __slots__ = "size",
    def __init__(self, size: int) -> None:
        self.size = size


class LibrariesResolvingEvent:
    """Event triggered when libraries start being resolved.
    """
    __slots__ = tuple()

class LibraryFetchEvent:
    """Event triggered after a missing library artifact has been fetched, or failed to.
    """
    __slots__ = "path", "native", "error"
    def __init__(self, path: Path, native: bool, error: Optional[Exception]) -> None:
        self.path = path
        self.native = native
        self.error = error

class LibrariesResolvedEvent:
    """Event triggered when all libraries has been resolved.
    """
    __slots__ = "count", "fetched_count", "failed_count"
    def __init__(self, count: int, fetched_count: int, failed_count: int) -> None:
        self.count = count
        self.fetched_count = fetched_count
        self.failed_count = failed_count


class AssetsResolveEvent:
    """Event triggered when the asset index is being resolved (count is none) and then
    when it has been resolved, with the number of distinct objects.
    """
    __slots__ = "index_version", "count"
    def __init__(self, index_version: str, count: Optional[int]) -> None:
        self.index_version = index_version
        self.count = count

class AssetsCachedEvent:
    """Event triggered when every asset object is already present.
    """
    __slots__ = "count",
    def __init__(self, count: int) -> None:
        self.count = count

class AssetsStartEvent:
    __slots__ = "threads_count", "entries_count"
    def __init__(self, threads_count: int, entries_count: int) -> None:
        self.threads_count = threads_count
        self.entries_count = entries_count

class AssetsProgressEvent:
    __slots__ = "count", "total_count"
    def __init__(self, count: int, total_count: int) -> None:
        self.count = count
        self.total_count = total_count

class AssetErrorEvent:
    """Event triggered when a single asset object failed to download.
    """
    __slots__ = "hash", "code", "origin"
    def __init__(self, hash: str, code: str, origin: Optional[Exception]) -> None:
        self.hash = hash
        self.code = code
        self.origin = origin

class AssetsCompleteEvent:
    __slots__ = "fetched_count", "failed_count"
    def __init__(self, fetched_count: int, failed_count: int) -> None:
        self.fetched_count = fetched_count
        self.failed_count = failed_count


class NativesErrorEvent:
    """Event triggered when an archive of native libraries can't be extracted.
    """
    __slots__ = "path", "error"
    def __init__(self, path: Path, error: Exception) -> None:
        self.path = path
        self.error = error

class NativesExtractedEvent:
    __slots__ = "count",
    def __init__(self, count: int) -> None:
        self.count = count


class CommandBuiltEvent:
    __slots__ = "args",
    def __init__(self, args: List[str]) -> None:
        self.args = args

class ProcessStartedEvent:
    __slots__ = "pid",
    def __init__(self, pid: int) -> None:
        self.pid = pid

class ProcessOutputEvent:
    """Event triggered for every line printed by the game, standard error included. The
    line is given without its trailing new line.
    """

    PREFIX = "[MC]"

    __slots__ = "line",
    def __init__(self, line: str) -> None:
        self.line = line

    def __str__(self) -> str:
        return f"{self.PREFIX} {self.line}"

class ProcessExitedEvent:
    __slots__ = "exit_code",
    def __init__(self, exit_code: int) -> None:
        self.exit_code = exit_code


class LaunchFailedEvent:
    """Event triggered when the launch attempt has been aborted by the given error.
    """
    __slots__ = "error",
    def __init__(self, error: Exception) -> None:
        self.error = error
