import threading
import urllib.error
import urllib.request

import pytest

from ecsgame.server.app import create_server, main, server_address


@pytest.fixture
def running_server():
    server = create_server("127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
    thread.join()


def test_server_address_defaults():
    assert server_address({}) == ("0.0.0.0", 9669)


def test_server_address_from_environment():
    env = {"METRIC_HOST": "127.0.0.1", "METRIC_PORT": "8123"}
    assert server_address(env) == ("127.0.0.1", 8123)


@pytest.mark.parametrize("port", ["abc", "-1", "70000", ""])
def test_server_address_rejects_bad_port(port):
    with pytest.raises(ValueError):
        server_address({"METRIC_PORT": port})


def test_ping_answers_pong(running_server):
    with urllib.request.urlopen(running_server + "/ping") as response:
        assert response.status == 200
        assert response.read() == b"pong"


def test_ping_ignores_query_string(running_server):
    with urllib.request.urlopen(running_server + "/ping?x=1") as response:
        assert response.read() == b"pong"


def test_unknown_path_is_not_found(running_server):
    with pytest.raises(urllib.error.HTTPError) as info:
        urllib.request.urlopen(running_server + "/metrics")
    assert info.value.code == 404


def test_post_to_ping_is_not_allowed(running_server):
    request = urllib.request.Request(running_server + "/ping", data=b"", method="POST")
    with pytest.raises(urllib.error.HTTPError) as info:
        urllib.request.urlopen(request)
    assert info.value.code == 405


def test_main_runs_and_returns(monkeypatch):
    monkeypatch.setenv("METRIC_HOST", "127.0.0.1")
    monkeypatch.setenv("METRIC_PORT", "0")
    assert main([]) == 0


def test_main_rejects_unexpected_arguments(monkeypatch):
    monkeypatch.setenv("METRIC_PORT", "0")
    with pytest.raises(SystemExit) as info:
        main(["--bogus"])
    assert info.value.code == 2