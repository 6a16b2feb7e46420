"""Library resolution: apply the platform rules of a descriptor's libraries and fetch the
missing artifacts and native classifiers into the libraries directory.
"""

from pathlib import Path

from .event import Watcher, LibrariesResolvingEvent, LibraryFetchEvent, LibrariesResolvedEvent
from .http import http_download, TransportError, DEFAULT_TIMEOUT
from .manifest import VersionDescriptor, Artifact
from .util import current_os, current_arch_bits
from .context import Context

from typing import Dict, List, Optional, Tuple


def resolve_libraries(descriptor: VersionDescriptor, context: Context, watcher: Optional[Watcher] = None, *,
    os_name: str = current_os,
    arch_bits: Optional[int] = current_arch_bits,
    timeout: Optional[float] = DEFAULT_TIMEOUT
) -> List[Path]:
    """Resolve the libraries of the given descriptor, in order, for the given platform.

    Libraries excluded by their rules contribute nothing, neither their artifact nor
    their natives. Other libraries contribute the local path of their artifact and of
    their native classifier for the platform, both are fetched if absent from disk.

    A failed fetch is reported to the watcher and the path is still part of the result,
    so the failure shows later when the game is loaded.

    :return: The local paths of libraries, without duplicates and in descriptor order.
    """

    watcher = watcher or Watcher()
    watcher.handle(LibrariesResolvingEvent())

    # Using dict so we keep order.
    resolved: Dict[Path, None] = {}
    fetched_count = 0
    failed_count = 0

    for library in descriptor.libraries:

        if not library.is_allowed(os_name):
            continue

        artifacts: List[Tuple[Artifact, bool]] = []
        if library.artifact is not None:
            artifacts.append((library.artifact, False))

        native_artifact = library.native_artifact(os_name, arch_bits)
        if native_artifact is not None:
            artifacts.append((native_artifact, True))

        for artifact, native in artifacts:

            lib_path = library_path(context, artifact.path)
            if lib_path is None:
                failed_count += 1
                watcher.handle(LibraryFetchEvent(context.libraries_dir / artifact.path, native,
                    ValueError(f"invalid library path: {artifact.path}")))
                continue

            if not lib_path.is_file() and artifact.url is not None:
                try:
                    http_download(artifact.url, lib_path, timeout=timeout)
                    fetched_count += 1
                    watcher.handle(LibraryFetchEvent(lib_path, native, None))
                except TransportError as error:
                    failed_count += 1
                    watcher.handle(LibraryFetchEvent(lib_path, native, error))

            resolved[lib_path] = None

    watcher.handle(LibrariesResolvedEvent(len(resolved), fetched_count, failed_count))
    return list(resolved)


def library_path(context: Context, rel_path: str) -> Optional[Path]:
    """Compute the local path of a library from its path relative to the libraries
    directory, which always uses forward slashes. Paths escaping the libraries directory
    are rejected and `None` is returned.
    """
    parts = rel_path.split("/")
    if not len(rel_path) or rel_path.startswith("/") or any(part in ("", ".", "..") for part in parts) \
        or ":" in parts[0] or "\\" in rel_path:
        return None
    return context.libraries_dir.joinpath(*parts)
