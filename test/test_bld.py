import json
import pathlib
import subprocess
import typing

import py
import pytest

from gccbld import bld, common
from gccbld.archive import default_archive_list

type Path = py.path.LocalPath

gmp_url = "https://gmplib.org/download/gmp/gmp-6.1.2.tar.bz2"


@pytest.fixture(autouse=True)
def fake_host(monkeypatch: pytest.MonkeyPatch) -> typing.Iterator[list[list[str]]]:
    """固定平台并记录所有命令，make以状态7退出，curl和tar生成对应的文件"""

    command_list: list[list[str]] = []

    def fake_run(command: list[str], cwd: pathlib.Path | None = None, **kwargs: object) -> subprocess.CompletedProcess[str]:
        command_list.append(command)
        match command:
            case ["curl", "-L", "-o", output, _]:
                pathlib.Path(output).write_text("archive")
            case ["tar", "-xf", file] if cwd:
                (cwd / pathlib.Path(file).name.split(".tar.")[0]).mkdir()
            case ["make", *_]:
                return subprocess.CompletedProcess(command, 7)
            case _:
                pass
        return subprocess.CompletedProcess(command, 0, stdout="")

    monkeypatch.setattr(common.subprocess, "run", fake_run)
    monkeypatch.setattr(bld, "get_platform", lambda: "linux-centos-6.9-x86_64")
    monkeypatch.setattr(bld.os, "umask", lambda mask: 0o022)
    common.command_dry_run.set(False)
    yield command_list
    common.command_dry_run.set(False)


def test_default_config() -> None:
    """测试默认配置使用内置归档列表"""

    config = bld.configure()
    assert config.jobs == 1 and config.test
    assert [archive.url for archive in config.archive_list] == default_archive_list
    assert config.root_dir == pathlib.Path(".").resolve()


def test_too_many_arguments(capsys: pytest.CaptureFixture[str]) -> None:
    """测试多于一个位置参数时以状态1退出"""

    assert bld.main(["a", "b"]) == 1
    assert "ERROR: too many command line arguments (2), only zero or one is allowed" in capsys.readouterr().out


def test_status(tmpdir: Path, capsys: pytest.CaptureFixture[str], fake_host: list[list[str]]) -> None:
    """测试--status只显示构建进度"""

    assert bld.main([str(tmpdir), "--status"]) == 0
    output = capsys.readouterr().out
    assert "gmp-6.1.2" in output and "not_started" in output
    assert fake_host == []
    assert list(pathlib.Path(tmpdir).iterdir()) == []


def test_exit_status(tmpdir: Path, fake_host: list[list[str]]) -> None:
    """测试失败命令的退出状态原样返回"""

    config_file = pathlib.Path(tmpdir) / "config.json"
    config_file.write_text(json.dumps({"root": "build", "archives": [gmp_url]}))
    assert bld.main(["--import", str(config_file)]) == 7
    assert fake_host[-1] == ["make"]
    assert (pathlib.Path(tmpdir) / "build" / "src" / "gmp-6.1.2").is_dir()


def test_export(tmpdir: Path) -> None:
    """测试导出配置"""

    config_file = pathlib.Path(tmpdir) / "config.json"
    root = str(pathlib.Path(tmpdir) / "root")
    assert bld.main([root, "-j", "4", "--no-test", "--dry-run", "--status", "--export", str(config_file)]) == 0
    assert not config_file.exists()

    assert bld.main([root, "-j", "4", "--no-test", "--status", "--export", str(config_file)]) == 0
    assert json.loads(config_file.read_text()) == {"root": root, "jobs": 4, "archives": default_archive_list, "test": False}


def test_invalid_jobs(tmpdir: Path) -> None:
    """测试非法的并行任务数"""

    assert bld.main([str(tmpdir), "-j", "0"]) == 1


class test_signal_exit_status:
    """测试被信号终止的命令按shell的惯例返回128+信号值"""

    config: dict[str, typing.Any]

    @classmethod
    def setup_class(cls) -> None:
        cls.config = {"root": "build", "archives": [gmp_url]}

    @pytest.mark.parametrize("returncode, errno", [(-9, 137), (-15, 143), (2, 2)])
    def test_killed_make(self, tmpdir: Path, monkeypatch: pytest.MonkeyPatch, returncode: int, errno: int) -> None:
        """make被信号终止时返回码为负数，main返回非负的退出状态"""

        def fake_run(command: list[str], cwd: pathlib.Path | None = None, **kwargs: object) -> subprocess.CompletedProcess[str]:
            match command:
                case ["curl", "-L", "-o", output, _]:
                    pathlib.Path(output).write_text("archive")
                case ["tar", "-xf", file] if cwd:
                    (cwd / pathlib.Path(file).name.split(".tar.")[0]).mkdir()
                case ["make", *_]:
                    return subprocess.CompletedProcess(command, returncode)
                case _:
                    pass
            return subprocess.CompletedProcess(command, 0, stdout="")

        monkeypatch.setattr(common.subprocess, "run", fake_run)
        config_file = pathlib.Path(tmpdir) / "config.json"
        config_file.write_text(json.dumps(self.config))
        assert bld.main(["--import", str(config_file)]) == errno
