"""HTTP primitive functions.
"""

from urllib.error import HTTPError, URLError
from http.client import HTTPResponse
from pathlib import Path
import urllib.request
import shutil
import socket
import ssl

import certifi

from . import LAUNCHER_NAME, LAUNCHER_VERSION

from typing import Optional, Union, cast


__all__ = ["HttpResponse", "TransportError", "http_request", "http_download",
    "DEFAULT_TIMEOUT", "USER_AGENT"]


DEFAULT_TIMEOUT = 15.0
USER_AGENT = f"{LAUNCHER_NAME}/{LAUNCHER_VERSION}"


class HttpResponse:
    """An HTTP response containing the status, data and received headers.
    """

    def __init__(self, res: Optional[HTTPResponse], *, read: bool = True) -> None:

        self.status = 0 if res is None else res.status
        self.data = b"" if res is None or not read else res.read()
        self.headers = {}

        if res is not None:
            for header_name, header_value in res.headers.items():
                self.headers[header_name] = header_value

    def text(self) -> str:
        """Decode the data as UTF-8 text.
        """
        return self.data.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<HttpResponse {self.status}>"


class TransportError(Exception):
    """Raised when the status code of a response is not 2xx, or when the request could
    not be sent at all.

    If any network error happens and it's impossible to receive a response from the
    server, an instance of `HttpResponse` with status equal to 0 is used (also has no
    headers and empty data). The original reason for this error is given in the `reason`
    attribute in any case.
    """

    def __init__(self, res: HttpResponse, method: str, url: str, reason: Union[URLError, OSError]) -> None:
        super().__init__(res, method, url, reason)
        self.res = res
        self.method = method
        self.url = url
        self.reason = reason

    def __str__(self) -> str:
        if self.res.status == 0:
            return f"{self.method} {self.url}: {self.reason}"
        return f"{self.method} {self.url}: HTTP {self.res.status}"

    def __repr__(self) -> str:
        return f"<TransportError {self.res}, origin: {self.method} {self.url}, reason: {self.reason}>"


def http_request(method: str, url: str, *,
    data: Optional[bytes] = None,
    headers: Optional[dict] = None,
    accept: Optional[str] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT
) -> HttpResponse:
    """Make a synchronous HTTP request.

    :return: The response returned should've a status of 2xx.
    :raises TransportError: An error wrapping a response that is not of status 2xx, or
    a connection error.
    """

    res = _open(method, url, data=data, headers=headers, accept=accept, timeout=timeout)
    try:
        return HttpResponse(res)
    except (OSError, socket.timeout) as error:
        raise TransportError(HttpResponse(None), method, url, error)
    finally:
        res.close()


def http_download(url: str, dst: Path, *, timeout: Optional[float] = DEFAULT_TIMEOUT) -> int:
    """Download the given URL into the destination file, creating parent directories.
    The file is removed if the transfer fails, so a present file is a complete one.

    :return: The number of bytes written.
    :raises TransportError: If the response is not 2xx or if the transfer fails.
    """

    res = _open("GET", url, timeout=timeout)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        with dst.open("wb") as dst_fp:
            shutil.copyfileobj(res, dst_fp, 65536)
            return dst_fp.tell()
    except (OSError, socket.timeout) as error:
        try:
            dst.unlink()
        except FileNotFoundError:
            pass
        raise TransportError(HttpResponse(None), "GET", url, error)
    finally:
        res.close()


def _open(method: str, url: str, *,
    data: Optional[bytes] = None,
    headers: Optional[dict] = None,
    accept: Optional[str] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT
) -> HTTPResponse:

    if headers is None:
        headers = {}
    if accept is not None:
        headers["Accept"] = accept
    if "User-Agent" not in headers:
        headers["User-Agent"] = USER_AGENT

    ctx = ssl.create_default_context(cafile=certifi.where())

    try:
        req = urllib.request.Request(url, data, headers, method=method)
        return urllib.request.urlopen(req, context=ctx, timeout=timeout)
    except HTTPError as error:
        raise TransportError(HttpResponse(cast(HTTPResponse, error)), method, url, error)
    except URLError as error:
        raise TransportError(HttpResponse(None), method, url, error)
    except (OSError, socket.timeout, ValueError) as error:
        # ValueError covers malformed or unsupported URLs.
        raise TransportError(HttpResponse(None), method, url, OSError(str(error)))
