"""Asset synchronization: the asset objects listed by an asset index are stored in a
content-addressed directory, this module fetches the objects missing from it.
"""

from threading import Event
import re

from .event import Watcher, AssetsResolveEvent, AssetsCachedEvent, AssetsStartEvent, \
    AssetsProgressEvent, AssetErrorEvent, AssetsCompleteEvent
from .download import DownloadList, DownloadEntry, DownloadResult, DownloadResultError
from .http import http_download, DEFAULT_TIMEOUT
from .manifest import VersionDescriptor
from .context import Context

from typing import List, Optional, Tuple


RESOURCES_URL = "https://resources.download.minecraft.net/"

# Maximum number of threads fetching objects at the same time.
MAX_THREADS = 8
# A progress event is emitted every time this number of objects are completed.
PROGRESS_INTERVAL = 50

_HASH_RE = re.compile(r"\"hash\"\s*:\s*\"([0-9a-f]{40})\"")


class AssetIndex:
    """An asset index, reduced to the ordered set of the content hashes it references.
    """

    __slots__ = "id", "hashes"

    def __init__(self, id: str, hashes: Tuple[str, ...]) -> None:
        self.id = id
        self.hashes = hashes

    def __len__(self) -> int:
        return len(self.hashes)

    def __repr__(self) -> str:
        return f"<AssetIndex {self.id} ({len(self.hashes)} objects)>"


def parse_asset_index(index_id: str, text: str) -> AssetIndex:
    """Extract every object hash of an asset index's text. Asset indexes are large flat
    mappings from names to hash and size, so the hashes are simply searched in the raw
    text. Duplicated hashes are kept once, in first-seen order.
    """
    return AssetIndex(index_id, tuple(dict.fromkeys(_HASH_RE.findall(text))))


def load_asset_index(descriptor: VersionDescriptor, context: Context, watcher: Optional[Watcher] = None, *,
    timeout: Optional[float] = DEFAULT_TIMEOUT
) -> Optional[AssetIndex]:
    """Load the asset index referenced by the descriptor from the indexes directory, it
    is fetched and stored there if missing.

    :return: The asset index, or none if the descriptor doesn't reference any.
    :raises TransportError: If the index needs to be fetched and the request fails.
    """

    watcher = watcher or Watcher()

    index_ref = descriptor.asset_index
    if index_ref is None:
        return None

    watcher.handle(AssetsResolveEvent(index_ref.id, None))

    index_file = context.assets_indexes_dir / f"{index_ref.id}.json"
    if not index_file.is_file():
        http_download(index_ref.url, index_file, timeout=timeout)

    index = parse_asset_index(index_ref.id, index_file.read_text(encoding="utf-8", errors="replace"))
    watcher.handle(AssetsResolveEvent(index_ref.id, len(index)))
    return index


def sync_assets(index: AssetIndex, context: Context, watcher: Optional[Watcher] = None, *,
    cancel: Optional[Event] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT
) -> List[DownloadResult]:
    """Fetch every object of the index whose file is missing from the objects directory.

    Objects are fetched concurrently by at most `MAX_THREADS` threads and this function
    returns once each of them has completed, successfully or not. Failed objects are
    reported to the watcher and never retried. Fetched bytes are trusted, the content is
    not checked against its hash.

    :return: One result per fetched object, empty if everything was already cached.
    """

    watcher = watcher or Watcher()

    dl = DownloadList(timeout=timeout)
    for asset_hash in index.hashes:
        asset_url = f"{RESOURCES_URL}{asset_hash[:2]}/{asset_hash}"
        dl.add(DownloadEntry(asset_url, context.asset_object_file(asset_hash), name=asset_hash), verify=True)

    if not dl.count:
        watcher.handle(AssetsCachedEvent(len(index)))
        return []

    threads_count = min(MAX_THREADS, dl.count)
    watcher.handle(AssetsStartEvent(threads_count, dl.count))

    results = []
    failed_count = 0

    for result_count, result in dl.download(threads_count, cancel=cancel):
        results.append(result)
        if isinstance(result, DownloadResultError):
            failed_count += 1
            watcher.handle(AssetErrorEvent(result.entry.name, result.code, result.origin))
        if result_count % PROGRESS_INTERVAL == 0:
            watcher.handle(AssetsProgressEvent(result_count, dl.count))

    watcher.handle(AssetsCompleteEvent(len(results) - failed_count, failed_count))
    return results
