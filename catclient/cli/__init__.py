"""Main entry point of the command line interface, standing in for a graphical shell. It
only renders the events emitted by the launcher, it never authenticates players.
"""

from threading import Event
from concurrent.futures import wait
import time
import sys

from .parse import register_arguments, RootNs, SearchNs, StartNs
from .util import format_number, format_duration, format_command
from .output import Output, HumanOutput, MachineOutput
from .lang import get as _

from catclient.event import SimpleWatcher, StatusEvent, ManifestFetchingEvent, ManifestFetchedEvent, \
    VersionLoadingEvent, VersionFetchingEvent, VersionLoadedEvent, JarFetchingEvent, JarFoundEvent, \
    LibrariesResolvingEvent, LibraryFetchEvent, LibrariesResolvedEvent, \
    AssetsResolveEvent, AssetsCachedEvent, AssetsStartEvent, AssetsProgressEvent, AssetErrorEvent, \
    AssetsCompleteEvent, NativesErrorEvent, NativesExtractedEvent, CommandBuiltEvent, \
    ProcessOutputEvent, ProcessExitedEvent
from catclient.manifest import VersionManifest, ParseError, VersionNotFoundError
from catclient.launcher import Launcher, VersionBusyError
from catclient.auth import LaunchIdentity, OfflineIdentity
from catclient.process import ProcessError
from catclient.http import TransportError
from catclient.util import jvm_bin_filename
from catclient.context import Context

from typing import cast, Optional, List, Union, Dict, Callable, Any


EXIT_OK = 0
EXIT_FAILURE = 1

MANIFEST_CACHE_FILE_NAME = "version_manifest_v2.json"

CommandHandler = Callable[[Any], Any]
CommandTree = Dict[str, Union[CommandHandler, "CommandTree"]]


def main(args: Optional[List[str]] = None):
    """Main entry point of the CLI. This function parses the input arguments and try to
    find a command handler to dispatch to. These command handlers are specified by the
    `get_command_handlers` function.
    """

    parser = register_arguments()
    ns: RootNs = cast(RootNs, parser.parse_args(sys.argv[1:] if args is None else args))

    # Setup common objects in the namespace.
    ns.out = get_output(ns.out_kind)
    ns.context = Context(ns.main_dir, ns.work_dir)
    ns.version_manifest = VersionManifest(ns.context.versions_dir / MANIFEST_CACHE_FILE_NAME, timeout=ns.timeout)

    # Find the command handler and run it.
    command_handlers = get_command_handlers()
    command_attr = "subcommand"
    while True:
        command = getattr(ns, command_attr)
        handler = command_handlers.get(command)
        if handler is None:
            parser.print_help()
            sys.exit(EXIT_FAILURE)
        elif callable(handler):
            cmd(handler, ns)
        elif isinstance(handler, dict):
            command_attr = f"{command}_{command_attr}"
            command_handlers = handler
            continue
        sys.exit(EXIT_OK)


def get_output(kind: str) -> Output:
    """Internal function that construct the output depending on its kind.
    The kind is constrained by choices set to the arguments parser.
    """
    if kind == "human-color":
        return HumanOutput(True)
    elif kind == "human":
        return HumanOutput(False)
    elif kind == "machine":
        return MachineOutput()
    else:
        raise ValueError()


def get_command_handlers() -> CommandTree:
    """Internal function returns the tree of command handlers for each subcommand
    of the CLI argument parser.
    """
    return {
        "search": cmd_search,
        "start": cmd_start,
        "show": {
            "about": cmd_show_about,
            "lang": cmd_show_lang,
        },
    }


def cmd(handler: CommandHandler, ns: RootNs):
    """Generic command handler that launch the given handler with the given namespace,
    it handles error in order to pretty print them.
    """

    try:
        handler(ns)
        sys.exit(EXIT_OK)

    except VersionNotFoundError as error:
        ns.out.task("FAILED", "start.version.not_found", version=error.version)
        ns.out.finish()

    except ParseError as error:
        ns.out.task("FAILED", "error.parse", message=str(error))
        ns.out.finish()

    except TransportError as error:
        ns.out.task("FAILED", None)
        ns.out.finish()
        if error.res.status == 0:
            ns.out.task(None, "error.transport.offline")
        else:
            ns.out.task(None, "error.transport", url=error.url, status=error.res.status)
        ns.out.finish()
        ns.out.task(None, "echo", echo=str(error.reason))
        ns.out.finish()

    except VersionBusyError as error:
        ns.out.task("FAILED", "error.busy", version=error.version)
        ns.out.finish()

    except ProcessError as error:
        ns.out.task("FAILED", "start.process_error", message=str(error))
        ns.out.finish()

    except ValueError as error:
        ns.out.task("FAILED", None)
        ns.out.finish()
        for arg in error.args:
            ns.out.task(None, "echo", echo=arg)
            ns.out.finish()

    except KeyboardInterrupt:
        ns.out.finish()
        ns.out.task("HALT", "keyboard_interrupt")
        ns.out.finish()

    except OSError:

        ns.out.task("FAILED", None)
        ns.out.finish()
        ns.out.task(None, "error.os")
        ns.out.finish()

        import traceback
        traceback.print_exc()

    sys.exit(EXIT_FAILURE)


def cmd_search(ns: SearchNs):

    table = ns.out.table()
    search = ns.input

    if ns.local:

        table.add(_("search.name"))
        table.separator()

        for version in ns.context.list_versions():
            if search is None or search in version.id:
                table.add(version.id)

    else:

        ns.out.task("..", "search.manifest.fetching")
        ns.version_manifest.fetch()
        ns.out.task("OK", None)
        ns.out.finish()

        table.add(_("search.type"), _("search.name"), _("search.flags"))
        table.separator()

        for summary in ns.version_manifest.releases():
            if search is None or search in summary.id:
                version = ns.context.get_version(summary.id)
                table.add(
                    summary.type,
                    summary.id,
                    _("search.flags.local") if version.descriptor_exists() else "")

    table.print()
    sys.exit(EXIT_OK)


def cmd_start(ns: StartNs):

    launcher = Launcher(ns.context, ns.version_manifest,
        jvm_path=ns.jvm or jvm_bin_filename,
        jvm_args=None if ns.jvm_args is None else ns.jvm_args.split(),
        timeout=ns.timeout,
        max_workers=1)

    watcher = StartWatcher(ns)
    cancel = Event()

    try:

        releases = launcher.refresh_versions(watcher)

        version = ns.version
        if version is None:
            if not len(releases):
                ns.out.task("FAILED", "start.version.none")
                ns.out.finish()
                sys.exit(EXIT_FAILURE)
            version = releases[0].id
            ns.out.task("INFO", "start.version.latest", version=version)
            ns.out.finish()

        future = launcher.launch(version, get_identity(ns), watcher, cancel=cancel, dry=ns.dry)
        try:
            future.result()
        except KeyboardInterrupt:
            # The game is terminated by the attempt itself once it sees the cancel.
            cancel.set()
            wait([future])
            raise

    finally:
        launcher.shutdown(wait=False)

    sys.exit(EXIT_OK)


def get_identity(ns: StartNs) -> LaunchIdentity:
    """Return the identity given by the arguments, an offline identity is derived from
    the username and UUID when no access token is given.
    """
    identity = OfflineIdentity(ns.username, ns.uuid)
    if ns.token is not None:
        identity = LaunchIdentity(identity.username, identity.user_id, ns.token)
    return identity


def cmd_show_about(ns: RootNs):

    from .. import LAUNCHER_VERSION, LAUNCHER_AUTHORS, LAUNCHER_URL, LAUNCHER_COPYRIGHT

    print(f"Version: {LAUNCHER_VERSION}")
    print(f"Authors: {', '.join(LAUNCHER_AUTHORS)}")
    print(f"Website: {LAUNCHER_URL}")
    print(f"License: {LAUNCHER_COPYRIGHT}")


def cmd_show_lang(ns: RootNs):

    from .lang import lang

    table = ns.out.table()

    # Intentionally not i18n for now because used for debug purpose.
    table.add("Key", "Message")
    table.separator()

    for key, msg in lang.items():
        table.add(key, msg)

    table.print()


class StartWatcher(SimpleWatcher):

    def __init__(self, ns: RootNs) -> None:

        def progress_task(key: str, **kwargs) -> None:
            ns.out.task("..", key, **kwargs)

        def finish_task(key: str, **kwargs) -> None:
            ns.out.task("OK", key, **kwargs)
            ns.out.finish()

        def manifest_fetched(e: ManifestFetchedEvent) -> None:
            if e.cached:
                ns.out.task("WARN", "search.manifest.fetched.cached", release_count=e.release_count)
                ns.out.finish()
            else:
                finish_task("search.manifest.fetched", count=e.count, release_count=e.release_count)

        def library_fetch(e: LibraryFetchEvent) -> None:
            if e.error is not None:
                ns.out.task("WARN", "start.libraries.failed", path=e.path.name, message=str(e.error))
                ns.out.finish()
            elif ns.verbose >= 1:
                ns.out.task("INFO", "start.libraries.fetched", path=e.path.name)
                ns.out.finish()

        def libraries_resolved(e: LibrariesResolvedEvent) -> None:
            key = "start.libraries.resolved.failed" if e.failed_count else "start.libraries.resolved"
            finish_task(key, count=e.count, fetched_count=e.fetched_count, failed_count=e.failed_count)

        def assets_resolve(e: AssetsResolveEvent) -> None:
            if e.count is None:
                progress_task("start.assets.resolving", index_version=e.index_version)
            else:
                finish_task("start.assets.resolved", index_version=e.index_version, count=e.count)

        def assets_start(e: AssetsStartEvent) -> None:
            if ns.verbose >= 1:
                ns.out.task("INFO", "start.assets.threads_count", count=e.threads_count)
                ns.out.finish()
            progress_task("start.assets.progress", count=0, total_count=e.entries_count)

        def asset_error(e: AssetErrorEvent) -> None:
            ns.out.task("WARN", "start.assets.error", name=e.hash, message=_(f"download.error.{e.code}"))
            ns.out.finish()

        def assets_complete(e: AssetsCompleteEvent) -> None:
            key = "start.assets.complete.failed" if e.failed_count else "start.assets.complete"
            finish_task(key, fetched_count=e.fetched_count, failed_count=e.failed_count)

        def natives_error(e: NativesErrorEvent) -> None:
            ns.out.task("WARN", "start.natives.error", path=e.path.name, message=str(e.error))
            ns.out.finish()

        def command_built(e: CommandBuiltEvent) -> None:
            if ns.verbose >= 1:
                ns.out.task("INFO", "start.command", command=format_command(e.args))
                ns.out.finish()

        super().__init__({
            ManifestFetchingEvent: lambda e: progress_task("search.manifest.fetching"),
            ManifestFetchedEvent: manifest_fetched,
            VersionLoadingEvent: lambda e: progress_task("start.version.loading", version=e.version),
            VersionFetchingEvent: lambda e: progress_task("start.version.fetching", version=e.version),
            VersionLoadedEvent: lambda e: finish_task("start.version.loaded.fetched" if e.fetched else "start.version.loaded", version=e.version),
            JarFetchingEvent: lambda e: progress_task("start.jar.fetching"),
            JarFoundEvent: lambda e: finish_task("start.jar.found", size=format_number(e.size)),
            LibrariesResolvingEvent: lambda e: progress_task("start.libraries.resolving"),
            LibraryFetchEvent: library_fetch,
            LibrariesResolvedEvent: libraries_resolved,
            AssetsResolveEvent: assets_resolve,
            AssetsCachedEvent: lambda e: finish_task("start.assets.cached", count=e.count),
            AssetsStartEvent: assets_start,
            AssetsProgressEvent: lambda e: progress_task("start.assets.progress", count=e.count, total_count=e.total_count),
            AssetErrorEvent: asset_error,
            AssetsCompleteEvent: assets_complete,
            NativesErrorEvent: natives_error,
            NativesExtractedEvent: lambda e: finish_task("start.natives.extracted", count=e.count),
            CommandBuiltEvent: command_built,
            StatusEvent: self.status,
            ProcessOutputEvent: lambda e: ns.out.print(f"{e}\n"),
            ProcessExitedEvent: self.process_exited,
        })

        self.ns = ns
        self.start_time: Optional[float] = None

    def status(self, e: StatusEvent) -> None:
        if e.status == StatusEvent.RUNNING:
            self.start_time = time.monotonic()
            self.ns.out.task("OK", "start.running", pid=e.pid)
            self.ns.out.finish()
            self.ns.out.print("\n")
        elif e.status == StatusEvent.FAILED:
            self.ns.out.finish()
        elif e.status == StatusEvent.CANCELLED:
            self.ns.out.task("HALT", "start.cancelled")
            self.ns.out.finish()

    def process_exited(self, e: ProcessExitedEvent) -> None:
        duration = 0.0 if self.start_time is None else time.monotonic() - self.start_time
        self.ns.out.task("INFO", "start.exited", code=e.exit_code, duration=format_duration(duration))
        self.ns.out.finish()
