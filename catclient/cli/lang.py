"""CLI languages management.
"""

from catclient.download import DownloadResultError
from catclient.util import jvm_bin_filename

from typing import Optional


def get_raw(key: str, kwargs: Optional[dict]) -> str:
    """Get a message translated using the given keyword formatting arguments.

    :param key: The key of the message to translate.
    :param kwargs: The keyword formatting dictionary.
    :return: Translated message, or the key itself if not found.
    """
    try:
        return lang[key].format_map(kwargs or {})
    except KeyError:
        return key


def get(key: str, **kwargs) -> str:
    """Get a message translated using the given keyword formatting arguments.

    :param key: The key of the message to translate.
    :return: Translated message, or the key itself if not found.
    """
    return get_raw(key, kwargs)


lang = {
    # Args root
    "args": "catclient installs and starts release versions of the game from the "
        "official version manifest, fetching only what is missing from its local cache.",
    "args.main_dir": "Set the main directory where versions, libraries, assets and natives "
        "are installed.",
    "args.work_dir": "Set the working directory where the game runs, it defaults to the "
        "main directory.",
    "args.timeout": "Set a timeout (in decimal seconds) for network requests.",
    "args.output": "Set the output format of the launcher, defaults to human-color.",
    "args.verbose": "Enable verbose output. The more -v argument you put, the more verbose "
        "the launcher will be (usually -v, -vv).",
    # Args search
    "args.search": "Search for release versions.",
    "args.search.local": "Only search installed versions.",
    # Args start
    "args.start": "Start a version of the game.",
    "args.start.version": "Version identifier, defaults to the latest release.",
    "args.start.dry": "Install the version and build its command without starting the game.",
    "args.start.jvm": f"Set a custom JVM '{jvm_bin_filename}' executable path, defaults to the "
        "one found in the PATH.",
    "args.start.jvm_args": "Change the default JVM arguments.",
    "args.start.username": "Set a custom user name to play.",
    "args.start.uuid": "Set a custom user UUID to play.",
    "args.start.token": "Set the access token given to the game, an offline session is used "
        "if omitted.",
    # Args show
    "args.show": "Show and debug various data.",
    "args.show.about": "Display authors, version and license of catclient.",
    "args.show.lang": "Debug the language mappings used for messages translation.",
    # Common
    "echo": "{echo}",
    "keyboard_interrupt": "Keyboard interrupted.",
    # Common errors
    "error.os": "An unexpected OS error happened:",
    "error.transport": "Request to {url} failed ({status}):",
    "error.transport.offline": "This operation requires an operational network, but a request failed:",
    "error.parse": "Invalid document: {message}",
    "error.busy": "Version {version} is already being started.",
    # Command search
    "search.type": "Type",
    "search.name": "Identifier",
    "search.flags": "Flags",
    "search.flags.local": "local",
    "search.manifest.fetching": "Fetching version manifest...",
    "search.manifest.fetched": "Fetched {count} versions, {release_count} releases",
    "search.manifest.fetched.cached": "Using cached manifest, {release_count} releases",
    # Command start
    "start.version.latest": "Latest release is {version}",
    "start.version.loading": "Loading version {version}... ",
    "start.version.fetching": "Fetching version {version}... ",
    "start.version.loaded": "Loaded version {version}",
    "start.version.loaded.fetched": "Loaded version {version} (fetched)",
    "start.version.not_found": "Version {version} not found",
    "start.version.none": "No release version available",
    "start.jar.fetching": "Fetching version jar...",
    "start.jar.found": "Checked version jar ({size}o)",
    "start.libraries.resolving": "Checking libraries...",
    "start.libraries.resolved": "Checked {count} libraries, {fetched_count} fetched",
    "start.libraries.resolved.failed": "Checked {count} libraries, {fetched_count} fetched, {failed_count} failed",
    "start.libraries.fetched": "Fetched library {path}",
    "start.libraries.failed": "Failed to fetch library {path}: {message}",
    "start.assets.resolving": "Checking assets version {index_version}... ",
    "start.assets.resolved": "Checked {count} assets version {index_version}",
    "start.assets.cached": "All {count} assets already cached",
    "start.assets.threads_count": "Assets threads count: {count}",
    "start.assets.progress": "Assets: {count}/{total_count}",
    "start.assets.complete": "Fetched {fetched_count} assets",
    "start.assets.complete.failed": "Fetched {fetched_count} assets, {failed_count} failed",
    "start.assets.error": "{name}: {message}",
    "start.natives.extracted": "Extracted {count} native libraries",
    "start.natives.error": "Failed to extract natives from {path}: {message}",
    "start.command": "Command: {command}",
    "start.running": "Game running (PID {pid})",
    "start.exited": "Game exited with code {code} after {duration}",
    "start.process_error": "Failed to start the game: {message}",
    "start.cancelled": "Launch cancelled",
    # Download errors
    f"download.error.{DownloadResultError.CONNECTION}": "Connection error",
    f"download.error.{DownloadResultError.NOT_FOUND}": "Not found",
    f"download.error.{DownloadResultError.CANCELLED}": "Cancelled",
    f"download.error.{DownloadResultError.REDIRECT}": "Invalid redirection",
}
