import os
import pathlib
import shutil
import subprocess

import py
import pytest

from gccbld import common
from gccbld import smoke_test
from gccbld.smoke_test import quicksort_test_source, smoke_test_list

type Path = py.path.LocalPath


def test_compile_command() -> None:
    """测试C++11测试使用-std=c++11"""

    assert smoke_test_list[0].compile_command("test1.bin", "-O3") == ["g++", "-O3", "-Wall", "-o", "test1.bin", "test1.cc"]
    assert smoke_test_list[3].compile_command("test4.dbg", "-g") == ["g++", "-std=c++11", "-g", "-Wall", "-o", "test4.dbg", "test4.cc"]


def test_quicksort_source() -> None:
    """测试快速排序程序使用单调时钟并在元素较少时使用插入排序"""

    assert "steady_clock" in quicksort_test_source
    assert "size_t M=32" in quicksort_test_source
    assert "while (is_sorted(a.begin(), a.end()))" in quicksort_test_source


def test_runner_sequence(tmpdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """测试冒烟测试的命令序列，测试目录存在时跳过"""

    command_list: list[list[str]] = []

    def fake_run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        command_list.append(command)
        return subprocess.CompletedProcess(command, 0)

    monkeypatch.setattr(common.subprocess, "run", fake_run)
    test_dir = pathlib.Path(tmpdir) / "LOCAL-TEST"
    assert smoke_test.test_runner(test_dir, {}).run()
    assert command_list[:4] == [["which", "g++"], ["which", "gcc"], ["which", "c++"], ["g++", "--version"]]
    # 4个程序分别以-O3和-g编译运行，test2和test4之后列出测试目录
    assert len(command_list) == 4 + 4 * 2 * 2 + 2
    assert command_list[5] == ["./test1.bin"]
    assert command_list[11] == ["./test2.dbg"]
    assert command_list[12] == ["ls", "-l"]
    assert command_list[-1] == ["ls", "-l"]
    assert (test_dir / "test4.cc").read_text() == quicksort_test_source

    command_list.clear()
    assert not smoke_test.test_runner(test_dir, {}).run()
    assert command_list == []


def test_runner_failure(tmpdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """测试失败的测试中止后续测试并保留退出状态"""

    command_list: list[list[str]] = []

    def fake_run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        command_list.append(command)
        return subprocess.CompletedProcess(command, 3 if command == ["./test2.bin"] else 0)

    monkeypatch.setattr(common.subprocess, "run", fake_run)
    with pytest.raises(common.command_error) as e:
        smoke_test.test_runner(pathlib.Path(tmpdir) / "LOCAL-TEST", {}).run()
    assert e.value.returncode == 3
    assert command_list[-1] == ["./test2.bin"]


class test_runner_retry:
    """测试失败后删除测试目录，下次运行会重新进行所有测试"""

    test_dir: pathlib.Path
    command_list: list[list[str]]

    @classmethod
    def setup_class(cls) -> None:
        cls.command_list = []

    def test_retry_after_failure(self, tmpdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """test4失败后测试目录不存在，再次运行时重新执行全部命令"""

        self.test_dir = pathlib.Path(tmpdir) / "LOCAL-TEST"
        failed_command = ["./test4.bin"]

        def fake_run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            self.command_list.append(command)
            return subprocess.CompletedProcess(command, 5 if command == failed_command else 0)

        monkeypatch.setattr(common.subprocess, "run", fake_run)
        with pytest.raises(common.command_error) as e:
            smoke_test.test_runner(self.test_dir, {}).run()
        assert e.value.returncode == 5
        assert self.command_list[-1] == failed_command
        assert not self.test_dir.exists()

        self.command_list.clear()
        failed_command = []
        assert smoke_test.test_runner(self.test_dir, {}).run()
        assert self.command_list[0] == ["which", "g++"]
        assert ["./test4.bin"] in self.command_list
        assert self.command_list[-1] == ["ls", "-l"]
        assert self.test_dir.is_dir()


@pytest.mark.skipif(shutil.which("g++") is None, reason="g++ is required")
@pytest.mark.parametrize("index", [0, 2, 3])
def test_compile_and_run(tmpdir: Path, index: int) -> None:
    """使用本机g++编译运行不依赖boost的测试程序"""

    test = smoke_test_list[index]
    cwd = pathlib.Path(tmpdir)
    (cwd / f"{test.name}.cc").write_text(test.source)
    subprocess.run(test.compile_command(f"{test.name}.bin", "-O3"), cwd=cwd, check=True)
    result = subprocess.run([str(cwd / f"{test.name}.bin")], cwd=cwd, capture_output=True, text=True, env=dict(os.environ))
    assert result.returncode == 0
    if index == 3:
        assert result.stdout.splitlines()[-1] == "PASSED"
