from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
from threading import Thread
import pytest

from catclient.event import Watcher

from typing import Dict, List


def pytest_addoption(parser):
    parser.addoption("--runslow", action="store_true", default=False, help="run slow tests")

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: mark test as slow to run")

def pytest_collection_modifyitems(config, items):

    if config.getoption("--runslow"):
        return

    skip_slow = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def tmp_context(tmp_path):
    """This fixture is used to create a game's install context in a temporary directory.
    """

    from catclient.context import Context
    return Context(tmp_path / "main")


class FakeServer:
    """A local HTTP server serving in-memory files, used in place of the official
    services. Paths missing from `files` give a 404.
    """

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.redirects: Dict[str, str] = {}
        self.requests: List[str] = []
        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(self))
        self.httpd.daemon_threads = True
        self.thread = Thread(target=self.httpd.serve_forever, daemon=True)

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.httpd.server_address[1]}{path}"

    def add(self, path: str, data) -> str:
        """Serve the given data (text or bytes) at the given path and return its URL.
        """
        self.files[path] = data.encode("utf-8") if isinstance(data, str) else data
        return self.url(path)

    def count(self, path: str) -> int:
        return self.requests.count(path)


def _make_handler(server: FakeServer):

    class Handler(BaseHTTPRequestHandler):

        protocol_version = "HTTP/1.1"

        def do_GET(self):
            server.requests.append(self.path)
            if self.path in server.redirects:
                self.send_response(302)
                self.send_header("Location", server.redirects[self.path])
                self.send_header("Content-Length", "0")
                self.end_headers()
                return
            data = server.files.get(self.path)
            if data is None:
                self.send_response(404)
                self.send_header("Content-Length", "0")
                self.end_headers()
                return
            self.send_response(200)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def log_message(self, format, *args):
            pass

    return Handler


@pytest.fixture
def http_server():
    """A running local HTTP server, stopped at the end of the test.
    """
    server = FakeServer()
    server.thread.start()
    yield server
    server.httpd.shutdown()
    server.httpd.server_close()


class EventRecorder(Watcher):
    """A watcher recording every event it receives.
    """

    def __init__(self) -> None:
        self.events = []

    def handle(self, event) -> None:
        self.events.append(event)

    def of(self, event_type: type) -> list:
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture
def recorder():
    return EventRecorder()
