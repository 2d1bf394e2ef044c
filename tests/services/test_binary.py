import contextlib
import os
import subprocess

import pytest

import nexusnode.services.binary as binary_module
from nexusnode.errors import InstallerError
from nexusnode.models import InstallerConfig
from nexusnode.services.binary import BinaryFetcherService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None

    def status(self, *_args, **_kwargs):
        return contextlib.nullcontext()


class FakeResponse:
    text = "#!/bin/sh\necho installing\n"

    def raise_for_status(self):
        return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, failures=0):
        self.failures = failures
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if len(self.calls) <= self.failures:
            raise self.RequestException("temporary download error")
        return FakeResponse()


def _service(tmp_path, requests_module):
    config = InstallerConfig(cli_dir=str(tmp_path / ".nexus"))
    return BinaryFetcherService(
        config=config,
        logger=DummyLogger(),
        console=DummyConsole(),
        requests_module=requests_module,
    )


def _installing_run_cmd(binary_path, calls):
    def run_cmd(cmd, **kwargs):
        calls.append((cmd, kwargs))
        os.makedirs(os.path.dirname(binary_path), exist_ok=True)
        with open(binary_path, "w", encoding="utf-8") as file_obj:
            file_obj.write("binary")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    return run_cmd


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(binary_module.time, "sleep", lambda seconds: sleeps.append(seconds))
    return sleeps


def test_fetch_skips_when_binary_present(tmp_path):
    requests_module = FakeRequestsModule()
    service = _service(tmp_path, requests_module)
    binary = tmp_path / ".nexus" / "bin" / "nexus-network"
    binary.parent.mkdir(parents=True)
    binary.write_text("binary", encoding="utf-8")

    def run_cmd(*_args, **_kwargs):
        raise AssertionError("install script must not run when the binary exists")

    assert service.fetch(run_cmd) is False
    assert service.fetch(run_cmd) is False
    assert requests_module.calls == []
    assert os.access(binary, os.X_OK)


def test_fetch_runs_install_script_and_marks_executable(tmp_path):
    requests_module = FakeRequestsModule()
    service = _service(tmp_path, requests_module)
    calls = []

    assert service.fetch(_installing_run_cmd(service.config.binary_path, calls)) is True

    url, kwargs = requests_module.calls[0]
    assert url == "https://cli.nexus.xyz/"
    assert kwargs["timeout"] == (30.0, 300.0)
    cmd, run_kwargs = calls[0]
    assert cmd == ["sh"]
    assert run_kwargs["input_text"] == FakeResponse.text
    assert os.access(service.config.binary_path, os.X_OK)


def test_fetch_retries_with_backoff(tmp_path, no_sleep):
    requests_module = FakeRequestsModule(failures=2)
    service = _service(tmp_path, requests_module)

    assert service.fetch(_installing_run_cmd(service.config.binary_path, [])) is True
    assert len(requests_module.calls) == 3
    assert no_sleep == [5.0, 5.0]


def test_fetch_fails_after_all_attempts(tmp_path, no_sleep):
    requests_module = FakeRequestsModule(failures=3)
    service = _service(tmp_path, requests_module)

    with pytest.raises(InstallerError, match="after 3 attempts"):
        service.fetch(_installing_run_cmd(service.config.binary_path, []))

    assert no_sleep == [5.0, 5.0]


def test_fetch_detects_missing_binary_after_reported_success(tmp_path):
    service = _service(tmp_path, FakeRequestsModule())

    def run_cmd(cmd, **_kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    with pytest.raises(InstallerError, match="does not exist"):
        service.fetch(run_cmd)


def test_fetch_retries_when_install_script_fails(tmp_path):
    service = _service(tmp_path, FakeRequestsModule())
    attempts = {"count": 0}
    install = _installing_run_cmd(service.config.binary_path, [])

    def run_cmd(cmd, **kwargs):
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise InstallerError("Command failed (1): sh")
        return install(cmd, **kwargs)

    assert service.fetch(run_cmd) is True
    assert attempts["count"] == 2
