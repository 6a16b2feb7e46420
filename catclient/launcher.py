"""The launch pipeline, going from a version identifier to a supervised game process:
manifest, descriptor, client JAR, libraries, assets, natives, command and process.

Each launch attempt runs sequentially on a worker thread of the launcher, its own state
is never shared with other attempts.
"""

from concurrent.futures import ThreadPoolExecutor, Future
from threading import Event, Lock
from pathlib import Path

from .event import Watcher, StatusEvent, ProgressEvent, ManifestFetchingEvent, \
    ManifestFetchedEvent, JarFetchingEvent, JarFoundEvent, CommandBuiltEvent, LaunchFailedEvent
from .manifest import VersionManifest, VersionSummary, VersionDescriptor, ParseError, \
    VersionNotFoundError, fetch_descriptor
from .command import LaunchCommand, build_command, detect_java_major
from .process import GameProcess, supervise
from .http import http_download, TransportError, DEFAULT_TIMEOUT
from .assets import load_asset_index, sync_assets
from .library import resolve_libraries
from .natives import extract_natives
from .auth import LaunchIdentity
from .util import jvm_bin_filename
from .context import Context

from typing import List, Optional, Set


# Download location of the client JAR for descriptors without a client URL.
LEGACY_JAR_URL = "https://s3.amazonaws.com/Minecraft.Download/versions/{id}/{id}.jar"


class PipelineState:
    """State of a single launch attempt, filled by the successive stages.
    """

    __slots__ = "version", "identity", "cancel", "descriptor", "jar_path", "lib_paths", \
        "natives_dir", "command", "process", "exit_code"

    def __init__(self, version: str, identity: LaunchIdentity, cancel: Optional[Event] = None) -> None:
        self.version = version
        self.identity = identity
        self.cancel = Event() if cancel is None else cancel
        self.descriptor: Optional[VersionDescriptor] = None
        self.jar_path: Optional[Path] = None
        self.lib_paths: List[Path] = []
        self.natives_dir: Optional[Path] = None
        self.command: Optional[LaunchCommand] = None
        self.process: Optional[GameProcess] = None
        self.exit_code: Optional[int] = None

    def __repr__(self) -> str:
        return f"<PipelineState {self.version}>"


class Launcher:
    """The launcher, owning the version manifest and the worker pool running the launch
    attempts. The launcher stays usable after any failed attempt.
    """

    def __init__(self,
        context: Optional[Context] = None,
        manifest: Optional[VersionManifest] = None, *,
        jvm_path: str = jvm_bin_filename,
        jvm_args: Optional[List[str]] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        max_workers: int = 2
    ) -> None:
        self.context = context or Context()
        self.manifest = manifest or VersionManifest(self.context.versions_dir / "version_manifest_v2.json", timeout=timeout)
        self.jvm_path = jvm_path
        self.jvm_args = jvm_args
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="Launch Thread")
        self._busy_lock = Lock()
        self._busy: Set[str] = set()

    def refresh_versions(self, watcher: Optional[Watcher] = None) -> List[VersionSummary]:
        """Fetch the version manifest again.

        :return: The release versions offered for selection, in manifest order.
        :raises TransportError: If the manifest can't be fetched and isn't cached.
        """
        watcher = watcher or Watcher()
        watcher.handle(ManifestFetchingEvent())
        versions = self.manifest.fetch()
        releases = [version for version in versions if version.is_release()]
        watcher.handle(ManifestFetchedEvent(len(versions), len(releases), self.manifest.cached))
        return releases

    def launch(self, version: str, identity: LaunchIdentity, watcher: Optional[Watcher] = None, *,
        cancel: Optional[Event] = None,
        dry: bool = False
    ) -> "Future[PipelineState]":
        """Submit a launch attempt to the worker pool, see `run`. The returned future
        gives the final state of the attempt or its error.
        """
        return self._executor.submit(self.run, version, identity, watcher, cancel=cancel, dry=dry)

    def run(self, version: str, identity: LaunchIdentity, watcher: Optional[Watcher] = None, *,
        cancel: Optional[Event] = None,
        dry: bool = False
    ) -> PipelineState:
        """Run a launch attempt on the calling thread, until the game exits.

        :param dry: Stop once the command is built, the game is not started.
        :param cancel: When set, the attempt stops after the assets stage, or the game is
        terminated if already running. The final status is then cancelled.
        :return: The final state of the attempt.
        :raises VersionBusyError: If another attempt is running for the same version.
        """

        watcher = watcher or Watcher()
        state = PipelineState(version, identity, cancel)

        with self._busy_lock:
            if version in self._busy:
                raise VersionBusyError(version)
            self._busy.add(version)

        try:
            watcher.handle(StatusEvent(StatusEvent.PREPARING))
            self._run_stages(state, watcher, dry)
        except Exception as error:
            if state.process is not None:
                state.process.terminate()
            watcher.handle(LaunchFailedEvent(error))
            watcher.handle(StatusEvent(StatusEvent.FAILED))
            raise
        finally:
            with self._busy_lock:
                self._busy.discard(version)

        watcher.handle(StatusEvent(StatusEvent.CANCELLED if state.cancel.is_set() else StatusEvent.READY))
        watcher.handle(ProgressEvent(0))
        return state

    def _run_stages(self, state: PipelineState, watcher: Watcher, dry: bool) -> None:

        context = self.context

        summary = self.manifest.get_version(state.version)
        if summary is None:
            raise VersionNotFoundError(state.version)

        descriptor = state.descriptor = fetch_descriptor(summary, context, watcher, timeout=self.timeout)
        watcher.handle(ProgressEvent(10))

        state.jar_path = self._resolve_jar(descriptor, watcher)
        watcher.handle(ProgressEvent(20))

        state.lib_paths = resolve_libraries(descriptor, context, watcher, timeout=self.timeout)
        watcher.handle(ProgressEvent(55))

        asset_index = load_asset_index(descriptor, context, watcher, timeout=self.timeout)
        if asset_index is not None:
            sync_assets(asset_index, context, watcher, cancel=state.cancel, timeout=self.timeout)
        watcher.handle(ProgressEvent(65))

        if state.cancel.is_set():
            return

        natives_dir = state.natives_dir = context.get_natives_dir(descriptor.id)
        extract_natives(state.lib_paths, natives_dir, watcher)
        watcher.handle(ProgressEvent(75))

        state.command = build_command(descriptor, context, state.identity,
            state.lib_paths, state.jar_path, natives_dir,
            jvm_path=self.jvm_path,
            jvm_args=self.jvm_args,
            java_major=detect_java_major(self.jvm_path))
        args = state.command.args()
        watcher.handle(CommandBuiltEvent(args))
        watcher.handle(ProgressEvent(90))

        if dry or state.cancel.is_set():
            return

        context.work_dir.mkdir(parents=True, exist_ok=True)
        process = state.process = GameProcess.start(args, context.work_dir)
        watcher.handle(ProgressEvent(100))
        watcher.handle(StatusEvent(StatusEvent.RUNNING, process.pid))

        state.exit_code = supervise(process, watcher, state.cancel)

    def _resolve_jar(self, descriptor: VersionDescriptor, watcher: Watcher) -> Path:
        """Ensure the client JAR is present in the version directory. Descriptors without
        a client URL get their JAR from the legacy download location.

        :raises ParseError: If the JAR is missing, the descriptor has no client URL and
        the legacy location doesn't provide it.
        :raises TransportError: If the descriptor's client URL can't be downloaded.
        """
        jar_file = self.context.get_version(descriptor.id).jar_file()
        if not jar_file.is_file():
            watcher.handle(JarFetchingEvent())
            if descriptor.client_url is not None:
                http_download(descriptor.client_url, jar_file, timeout=self.timeout)
            else:
                jar_url = LEGACY_JAR_URL.format(id=descriptor.id)
                try:
                    http_download(jar_url, jar_file, timeout=self.timeout)
                except TransportError as error:
                    raise ParseError(f"no client url for version {descriptor.id}, "
                        f"legacy location failed: {error}") from error
        watcher.handle(JarFoundEvent(jar_file.stat().st_size))
        return jar_file

    def is_busy(self, version: str) -> bool:
        with self._busy_lock:
            return version in self._busy

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the worker pool, attempts not yet started are cancelled.
        """
        self._executor.shutdown(wait=wait, cancel_futures=True)


class VersionBusyError(Exception):
    """Raised when a launch attempt is requested for a version that already has one
    running in this launcher.
    """
    def __init__(self, version: str) -> None:
        super().__init__(version)
        self.version = version

    def __str__(self) -> str:
        return repr(self.version)
