"""
Command line front door: init, dev, build, doctor and the exit codes they relay.
"""

import asyncio
import os
import signal
import sys

import pytest

from caffeine import __version__, cli, shell
from caffeine.config import ServerConfig
from caffeine.errors import BuildError


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "init" in capsys.readouterr().out


def test_help_command(capsys):
    assert cli.main(["help"]) == 0
    assert "doctor" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert f"caffeine-cli v{__version__}" in capsys.readouterr().out


def test_unknown_command():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["brew"])
    assert excinfo.value.code == 2


def test_init_creates_project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert cli.main(["init", "my-app"]) == 0
    assert (tmp_path / "my-app" / "package.json").is_file()


def test_init_refuses_existing_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "my-app").mkdir()
    assert cli.main(["init", "my-app"]) == 1


def test_dev_with_missing_path(tmp_path):
    assert cli.main(["dev", str(tmp_path / "nope"), "--no-shell"]) == 1


def test_dev_without_jar(site, tmp_path, monkeypatch):
    monkeypatch.setenv(shell.JAR_ENV, str(tmp_path / "absent.jar"))
    assert cli.main(["dev", str(site), "--port", "0"]) == 1


def test_build_failure_exit_code(monkeypatch):
    def fail(**kwargs):
        raise BuildError("prepare", "npm exited with code 1")
    monkeypatch.setattr(cli.builder, "build", fail)
    assert cli.main(["build"]) == 1


def test_doctor_runs(monkeypatch):
    monkeypatch.setattr(cli.doctor, "run_doctor", lambda console: False)
    assert cli.main(["doctor"]) == 0


class FakeShell:
    def __init__(self, exit_code, delay=0.05):
        self.exit_code = exit_code
        self.delay = delay
        self.returncode = None
        self.terminated = False

    async def wait(self):
        if self.returncode is None:
            await asyncio.sleep(self.delay)
            self.returncode = self.exit_code
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15


def config_for(root):
    return ServerConfig(root=root, port=0, host="127.0.0.1")


@pytest.mark.asyncio
async def test_dev_relays_shell_exit_code(site, tmp_path, monkeypatch):
    jar = tmp_path / "shell.jar"
    jar.write_bytes(b"PK")
    monkeypatch.setenv(shell.JAR_ENV, str(jar))
    launched = []

    async def launch(url, jar=None):
        launched.append(url)
        return FakeShell(exit_code=3)

    monkeypatch.setattr(cli.shell, "launch", launch)

    assert await cli.run_dev(config_for(site)) == 3
    assert launched and launched[0].startswith("http://127.0.0.1:")


@pytest.mark.asyncio
async def test_dev_reports_java_that_cannot_start(site, tmp_path, monkeypatch):
    jar = tmp_path / "shell.jar"
    jar.write_bytes(b"PK")
    monkeypatch.setenv(shell.JAR_ENV, str(jar))

    async def launch(url, jar=None):
        raise FileNotFoundError("java")

    monkeypatch.setattr(cli.shell, "launch", launch)
    assert await cli.run_dev(config_for(site)) == 1


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="needs loop signal handlers")
async def test_dev_stops_on_interrupt(site, tmp_path, monkeypatch):
    jar = tmp_path / "shell.jar"
    jar.write_bytes(b"PK")
    monkeypatch.setenv(shell.JAR_ENV, str(jar))
    proc = FakeShell(exit_code=0, delay=60)

    async def launch(url, jar=None):
        return proc

    monkeypatch.setattr(cli.shell, "launch", launch)
    loop = asyncio.get_running_loop()
    loop.call_later(0.2, os.kill, os.getpid(), signal.SIGINT)

    assert await asyncio.wait_for(cli.run_dev(config_for(site)), timeout=10) == 0
    assert proc.terminated


def test_exit_code_reporting():
    assert cli.report_exit(0) == 0
    assert cli.report_exit(1) == 1
