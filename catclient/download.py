"""Definition of the bounded download task group, used to fetch many small files at once
with a fixed number of threads.
"""

from http.client import HTTPConnection, HTTPSConnection, HTTPException
from threading import Thread, Event
from pathlib import Path
from queue import Queue
import urllib.parse
import socket
import ssl

import certifi

from .http import DEFAULT_TIMEOUT, USER_AGENT

from typing import Optional, Dict, List, Tuple, Union, Iterator


# Maximum number of redirections followed for a single entry.
MAX_REDIRECTS = 5


class DownloadEntry:
    """A download entry for the download task.
    """

    __slots__ = "url", "dst", "name"

    def __init__(self, url: str, dst: Path, *, name: Optional[str] = None) -> None:
        self.url = url
        self.dst = dst
        self.name = url if name is None else name

    def __repr__(self) -> str:
        return f"<DownloadEntry {self.name}>"

    def __hash__(self) -> int:
        return hash((self.url, self.dst))

    def __eq__(self, other):
        return isinstance(other, DownloadEntry) and \
            (self.url, self.dst) == (other.url, other.dst)


class _DownloadEntry:
    """Internal class with already parsed URL to speed up processing and prevent
    unsupported URL schemes.
    """

    __slots__ = "https", "host", "port", "path", "url", "entry", "redirects"

    def __init__(self, https: bool, host: str, port: Optional[int], path: str, url: str,
        entry: DownloadEntry,
        redirects: int = 0
    ) -> None:
        self.https = https
        self.host = host
        self.port = port
        self.path = path
        self.url = url
        self.entry = entry
        self.redirects = redirects

    @classmethod
    def from_entry(cls, entry: DownloadEntry) -> "_DownloadEntry":
        return cls.from_url(entry.url, entry)

    @classmethod
    def from_url(cls, url: str, entry: DownloadEntry, redirects: int = 0) -> "_DownloadEntry":
        """Parse the URL actually requested for the given entry, which differs from the
        entry's URL after a redirection.
        """

        # We only support HTTP/HTTPS
        url_parsed = urllib.parse.urlparse(url)
        if url_parsed.scheme not in ("http", "https"):
            raise ValueError(f"unsupported scheme '{url_parsed.scheme}://' from url {url}")

        path = url_parsed.path or "/"
        if url_parsed.query:
            path = f"{path}?{url_parsed.query}"

        return cls(
            url_parsed.scheme == "https",
            url_parsed.hostname or "",
            url_parsed.port,
            path,
            url,
            entry,
            redirects)


class DownloadResult:
    """Base class for download result yielded by `DownloadList.download` function.
    """
    __slots__ = "thread_id", "entry"
    def __init__(self, thread_id: int, entry: DownloadEntry) -> None:
        self.thread_id = thread_id
        self.entry = entry


class DownloadResultSuccess(DownloadResult):
    """Subclass of result when a file's download has been successful.
    """
    __slots__ = "size",
    def __init__(self, thread_id: int, entry: DownloadEntry, size: int) -> None:
        super().__init__(thread_id, entry)
        self.size = size


class DownloadResultError(DownloadResult):
    """Subclass of result when a file's download has failed, the error code is indicated
    and the optional original error is given (for connection and redirect errors).
    """

    CONNECTION = "connection"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"
    REDIRECT = "redirect"

    __slots__ = "code", "origin"

    def __init__(self, thread_id: int, entry: DownloadEntry, code: str, origin: Optional[Exception]) -> None:
        super().__init__(thread_id, entry)
        self.code = code
        self.origin = origin


class DownloadList:
    """A download list, composed of entries that can be downloaded all at once in batch
    with multithreading. Entries are dispatched in insertion order, each one is tried
    once and its failure never stops the other ones.
    """

    __slots__ = "entries", "count", "timeout"

    def __init__(self, *, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.entries: List[_DownloadEntry] = []
        self.count = 0
        self.timeout = timeout

    def clear(self) -> None:
        """Clear the download list, removing all entries.
        """
        self.entries.clear()
        self.count = 0

    def add(self, entry: DownloadEntry, *, verify: bool = False) -> None:
        """Add a download entry to this list.

        :param entry: The entry to add.
        :param verify: Set to true in order to check if the file exists, in such case the
        entry is not added.
        """

        if verify and entry.dst.is_file():
            return

        self.entries.append(_DownloadEntry.from_entry(entry))
        self.count += 1

    def download(self, threads_count: int, *,
        cancel: Optional[Event] = None
    ) -> Iterator[Tuple[int, DownloadResult]]:
        """Execute the download.

        :param threads_count: The number of threads to run the download on.
        :param cancel: An optional event, when set the remaining entries are not started
        and are given a `DownloadResultError.CANCELLED` result.
        :return: This function returns an iterator that yields a tuple that contain the
        total number of results and the new result that came in. Exactly one result is
        yielded for each entry.
        """

        entries_count = len(self.entries)
        if not entries_count or threads_count < 1:
            return

        threads: List[Thread] = []

        entries_queue = Queue()
        result_queue = Queue()

        for th_id in range(threads_count):
            th = Thread(target=_download_thread_wrapper,
                        args=(th_id, entries_queue, result_queue, cancel, self.timeout),
                        daemon=True,
                        name=f"Download Thread {th_id}")
            th.start()
            threads.append(th)

        result_count = 0

        for entry in self.entries:
            entries_queue.put(entry)

        crash = None

        while result_count < entries_count:

            result = result_queue.get()
            if isinstance(result, _DownloadThreadCrash):
                crash = result
                break

            result_count += 1
            yield result_count, result

        # Send 'threads_count' sentinels.
        # We intentionally don't join thread because we don't care of these threads
        # because these are daemon ones.
        for th_id in range(threads_count):
            entries_queue.put(None)

        if crash is not None:
            raise ValueError(f"unexpected crash from thread {crash.thread_id}", crash.origin)

    def download_all(self, threads_count: int, *,
        cancel: Optional[Event] = None
    ) -> List[DownloadResult]:
        """Execute the download and return all results once every entry is done.
        """
        return [result for _count, result in self.download(threads_count, cancel=cancel)]


class _DownloadThreadCrash:
    """Unexpected exception happening in a thread, this is the result of a bad logic
    from programmer.
    """
    __slots__ = "thread_id", "origin",
    def __init__(self, thread_id: int, origin: Optional[Exception]) -> None:
        self.thread_id = thread_id
        self.origin = origin


def _download_thread_wrapper(
    thread_id: int,
    entries_queue: Queue,
    result_queue: Queue,
    cancel: Optional[Event],
    timeout: Optional[float]
) -> None:
    """Wrapper for the download thread that basically ensures that any unexpected error
    sends a signal (DownloadThreadCrash) to the master to signal the crash.
    """
    try:
        _download_thread(thread_id, entries_queue, result_queue, cancel, timeout)
    except Exception as e:
        result_queue.put(_DownloadThreadCrash(thread_id, e))


def _download_thread(
    thread_id: int,
    entries_queue: Queue,
    result_queue: Queue,
    cancel: Optional[Event],
    timeout: Optional[float]
) -> None:
    """This function is internally used for multi-threaded download.

    :param entries_queue: Where entries to download are received.
    :param result_queue: Where threads send results.
    """

    # Cache for connections depending on host and https
    conn_cache: Dict[Tuple[bool, str, Optional[int]], Union[HTTPConnection, HTTPSConnection]] = {}

    # Each thread has its own buffer.
    buffer = memoryview(bytearray(65536))

    ctx = ssl.create_default_context(cafile=certifi.where())
    headers = {"User-Agent": USER_AGENT}

    while True:

        raw_entry: Optional[_DownloadEntry] = entries_queue.get()

        # None is a sentinel to stop the thread, it should be consumed ONCE.
        if raw_entry is None:
            break

        entry = raw_entry.entry

        if cancel is not None and cancel.is_set():
            result_queue.put(DownloadResultError(thread_id, entry, DownloadResultError.CANCELLED, None))
            continue

        conn_key = (raw_entry.https, raw_entry.host, raw_entry.port)

        # Get connection from cache or create it.
        conn = conn_cache.get(conn_key)
        if conn is None:
            if raw_entry.https:
                conn = HTTPSConnection(raw_entry.host, raw_entry.port, timeout=timeout, context=ctx)
            else:
                conn = HTTPConnection(raw_entry.host, raw_entry.port, timeout=timeout)
            conn_cache[conn_key] = conn

        try:

            conn.request("GET", raw_entry.path, headers=headers)
            res = conn.getresponse()

            if res.status != 200:

                # This loop is used to skip all bytes in the stream,
                # and allow further request.
                while res.readinto(buffer):
                    pass

                if res.status in (301, 302, 307, 308) and "location" in res.headers:
                    redirect_url = urllib.parse.urljoin(raw_entry.url, res.headers["location"])
                    if raw_entry.redirects >= MAX_REDIRECTS:
                        result_queue.put(DownloadResultError(thread_id, entry, DownloadResultError.REDIRECT,
                            ValueError(f"too many redirects, last to {redirect_url}")))
                        continue
                    try:
                        redirect_entry = _DownloadEntry.from_url(redirect_url, entry, raw_entry.redirects + 1)
                    except ValueError as e:
                        result_queue.put(DownloadResultError(thread_id, entry, DownloadResultError.REDIRECT, e))
                        continue
                    entries_queue.put(redirect_entry)
                    continue

                # Any other non-200 code is considered not found.
                result_queue.put(DownloadResultError(thread_id, entry, DownloadResultError.NOT_FOUND, None))
                continue

            size = 0
            entry.dst.parent.mkdir(parents=True, exist_ok=True)
            with entry.dst.open("wb") as dst_fp:
                while True:
                    read_len = res.readinto(buffer)
                    if not read_len:
                        break
                    size += read_len
                    dst_fp.write(buffer[:read_len])

            result_queue.put(DownloadResultSuccess(thread_id, entry, size))
            continue

        except (ConnectionError, OSError, HTTPException, socket.timeout) as e:

            # On errors, we just throw away the old connection and create a new one.
            # Raw but efficient way of resetting the potentially broken state...
            conn.close()
            del conn_cache[conn_key]

            result_queue.put(DownloadResultError(thread_id, entry, DownloadResultError.CONNECTION, e))

        # We are here only when the file download has started but failed, then we
        # should remove the partial file.
        try:
            entry.dst.unlink()
        except FileNotFoundError:
            pass  # Not a problem if the file isn't present.
