"""
真实 uvicorn 监听测试

在后台线程中以临时端口运行完整启动流程，验证启动后转储与绑定失败处理。
"""

import socket
import threading
import time

import httpx
import pytest
from loguru import logger

from pairgoth_container import server as server_module
from pairgoth_container.exceptions import ServerStartError
from pairgoth_container.server import Bootstrap, BootstrapState

TIMEOUT = 10


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_for(condition, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return False


@pytest.fixture
def messages():
    captured = []
    handler_id = logger.add(captured.append, level="INFO", format="{message}")
    yield captured
    logger.remove(handler_id)


@pytest.fixture
def run_in_thread():
    threads = []

    def start(boot):
        errors = []

        def target():
            try:
                boot.run()
            except BaseException as exc:
                errors.append(exc)

        thread = threading.Thread(target=target, daemon=True)
        thread.start()
        threads.append((boot, thread))
        return thread, errors

    yield start

    for boot, thread in threads:
        if boot.server is not None:
            boot.server.should_exit = True
        thread.join(TIMEOUT)


def test_development_dump_after_start(working_dir, make_settings, dev_webapps, messages, run_in_thread):
    port = _free_port()
    boot = Bootstrap(make_settings(SERVER_PORT=port), working_dir=working_dir)
    thread, errors = run_in_thread(boot)

    assert _wait_for(lambda: any("Server@127.0.0.1" in m for m in messages)), errors
    assert boot.server.started
    assert isinstance(boot.server, server_module.ContainerServer)

    with httpx.Client(trust_env=False, timeout=TIMEOUT) as client:
        response = client.get(f"http://127.0.0.1:{port}/api/")
    assert response.status_code == 200
    assert response.text == "<html>api</html>"

    boot.server.should_exit = True
    thread.join(TIMEOUT)
    assert not thread.is_alive()
    assert errors == []
    assert boot.state is BootstrapState.STOPPED

    (dump,) = [m for m in messages if f"Server@127.0.0.1:{port}" in m]
    assert "mode=development" in dump
    assert "WebAppContext[api] /api" in dump


def test_bind_failure_raises_server_start_error(
    working_dir, make_settings, dev_webapps, monkeypatch, run_in_thread
):
    # 跳过预检，让 uvicorn 自己绑定失败
    monkeypatch.setattr(server_module, "_port_available", lambda host, port: True)
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupier:
        occupier.bind(("127.0.0.1", 0))
        occupier.listen(1)
        port = occupier.getsockname()[1]

        boot = Bootstrap(make_settings(SERVER_PORT=port), working_dir=working_dir)
        thread, errors = run_in_thread(boot)
        thread.join(TIMEOUT)

    assert not thread.is_alive()
    (error,) = errors
    assert isinstance(error, ServerStartError)
    assert error.error_code == "SERVER_START_ERROR"
    assert not boot.server.started
    assert boot.state is BootstrapState.RUNNING
