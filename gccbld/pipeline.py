import enum
import os
import shutil
import socket
import time
import typing
from pathlib import Path

from . import common
from .archive import archive_spec
from .build_profile import addon_pattern, build_context, build_style, profile_list
from .env_script import check_script_path, generate_env_script
from .host_platform import get_platform
from .smoke_test import test_runner

# 构建前需要从环境中删除的变量，避免影响被构建的包
unset_variable_list: typing.Final[tuple[str, ...]] = (
    "LIBRARY_PATH",
    "CPATH",
    "C_INCLUDE_PATH",
    "PKG_CONFIG_PATH",
    "CPLUS_INCLUDE_PATH",
    "INCLUDE",
)

pending_dir_name: typing.Final[str] = ".pending"


class package_state(enum.IntEnum):
    """包的构建进度，由目录中的标记推导得到"""

    not_started = 0
    downloaded = 1
    extracted = 2
    built = 3


class stage(enum.StrEnum):
    """流水线阶段"""

    download = "DOWNLOAD"
    extract = "EXTRACT"
    build = "BUILD"


class environment:
    """构建流水线的目录布局和环境"""

    root_dir: Path  # 根目录
    archive_dir: Path  # 源代码归档存放目录
    src_dir: Path  # 源代码解压目录
    bld_dir: Path  # 构建目录
    rtf_dir: Path  # 安装目录
    test_dir: Path  # 冒烟测试目录
    pending_dir: Path  # 进行中阶段的标记目录
    archive_list: list[archive_spec]  # 按构建顺序排列的归档列表
    jobs: int  # make使用的并行任务数
    platform: str  # 当前平台标识

    def __init__(self, root_dir: Path, archive_list: list[archive_spec], jobs: int = 1, platform: str | None = None) -> None:
        self.root_dir = root_dir
        self.archive_dir = root_dir / "archives"
        self.src_dir = root_dir / "src"
        self.bld_dir = root_dir / "bld"
        self.rtf_dir = root_dir / "rtf"
        self.test_dir = self.src_dir / "LOCAL-TEST"
        self.pending_dir = self.bld_dir / pending_dir_name
        self.archive_list = archive_list
        self.jobs = jobs
        self.platform = platform or get_platform()

    def build_env(self, base: typing.Mapping[str, str] | None = None) -> dict[str, str]:
        """生成传递给所有子进程的环境变量，base默认为当前进程的环境变量

        Args:
            base (typing.Mapping[str, str] | None, optional): 基础环境变量. 默认为os.environ.

        Returns:
            dict[str, str]: 新的环境变量
        """

        env = dict(os.environ if base is None else base)
        for key in unset_variable_list:
            env.pop(key, None)
        env["PATH"] = f"{self.rtf_dir / 'bin'}:{env.get('PATH', '')}"
        env["LD_LIBRARY_PATH"] = f"{self.rtf_dir / 'lib'}:{self.rtf_dir / 'lib64'}:{env.get('LD_LIBRARY_PATH', '')}"
        return env

    def archive_path(self, archive: archive_spec) -> Path:
        return self.archive_dir / archive.file_name

    def source_path(self, archive: archive_spec) -> Path:
        return self.src_dir / archive.dir_name

    def build_path(self, archive: archive_spec) -> Path:
        return self.bld_dir / archive.dir_name

    def pending_path(self, archive: archive_spec) -> Path:
        return self.pending_dir / archive.dir_name

    def pending_stage(self, archive: archive_spec) -> stage | None:
        """获取包的未完成阶段

        Args:
            archive (archive_spec): 归档

        Returns:
            stage | None: 上次运行中断时正在进行的阶段，不存在时返回None
        """

        path = self.pending_path(archive)
        if not path.is_file():
            return None
        text = path.read_text().strip()
        return stage(text) if text in stage else None

    def get_state(self, archive: archive_spec) -> package_state:
        """根据目录中的标记推导包的构建进度

        Args:
            archive (archive_spec): 归档

        Returns:
            package_state: 构建进度
        """

        pending = self.pending_stage(archive)
        if self.build_path(archive).is_dir() and pending != stage.build:
            return package_state.built
        if self.source_path(archive).is_dir() and pending != stage.extract:
            return package_state.extracted
        if self.archive_path(archive).is_file():
            return package_state.downloaded
        return package_state.not_started

    def _begin(self, archive: archive_spec, current: stage) -> None:
        common.mkdir(self.pending_dir)
        common.write_text(self.pending_path(archive), f"{current}\n")

    def _finish(self, archive: archive_spec) -> None:
        common.remove_if_exists(self.pending_path(archive))

    def _discard_incomplete(self, archive: archive_spec, current: stage, path: Path) -> None:
        """删除上次中断的阶段留下的不完整目录"""

        if self.pending_stage(archive) == current and path.exists():
            common.gccbld_print(common.gccbld_warning(f"{current} of {archive.dir_name} was interrupted, redo it."))
            common.remove(path)
            self._finish(archive)

    def download(self, archive: archive_spec, env: dict[str, str]) -> None:
        """下载归档，先下载到<file>.part，成功后重命名

        Args:
            archive (archive_spec): 归档
            env (dict[str, str]): 命令使用的环境变量

        Raises:
            RuntimeError: url为空
        """

        common.gccbld_print(archive.banner(stage.download))
        path = self.archive_path(archive)
        if path.is_file():
            common.gccbld_print(common.gccbld_note(f"already downloaded {archive.file_name}"))
            return
        if not archive.url:
            raise RuntimeError(common.gccbld_error(f"archive download failed: {archive.url}"))
        part = path.with_name(f"{path.name}.part")
        common.run_command(["curl", "-L", "-o", str(part), archive.url], archive.url, self.archive_dir, env)
        common.rename(part, path)

    def extract(self, archive: archive_spec, env: dict[str, str]) -> None:
        """解压归档到src目录，归档没有生成预期目录时创建空目录

        Args:
            archive (archive_spec): 归档
            env (dict[str, str]): 命令使用的环境变量
        """

        common.gccbld_print(archive.banner(stage.extract))
        source = self.source_path(archive)
        self._discard_incomplete(archive, stage.extract, source)
        if source.is_dir():
            common.gccbld_print(common.gccbld_note(f"already extracted {archive.file_name}"))
            return
        self._begin(archive, stage.extract)
        common.run_command(["tar", "-xf", str(self.archive_path(archive))], archive.url, self.src_dir, env)
        if not source.is_dir():
            # 如gcc-g++等覆盖到其他包中的归档，创建空目录避免重复解压
            common.mkdir(source)
        self._finish(archive)

    def build(self, archive: archive_spec, env: dict[str, str]) -> None:
        """配置、构建并安装包，构建完成后删除冒烟测试目录以重新测试

        Args:
            archive (archive_spec): 归档
            env (dict[str, str]): 命令使用的环境变量

        Raises:
            RuntimeError: 未知的包
        """

        common.gccbld_print(archive.banner(stage.build))
        source = self.source_path(archive)
        build = self.build_path(archive)
        self._discard_incomplete(archive, stage.build, build)
        if build.is_dir():
            common.gccbld_print(common.gccbld_note(f"already built {source}"))
            return
        if addon_pattern.match(archive.file_name):
            # gcc-g++是gcc的一部分，不单独构建
            common.gccbld_print(common.gccbld_note(f"skipping {source}"))
            return

        context = build_context(self.rtf_dir, self.bld_dir, source, self.platform)
        profile = profile_list.get_profile(archive.dir_name, context)
        self._begin(archive, stage.build)
        profile.apply_patches(context)
        common.mkdir(build)
        match profile.style:
            case build_style.configure:
                self._configure_build(archive, profile.configure_args, env)
            case build_style.bootstrap:
                self._bootstrap_build(archive, profile.configure_args, env)
        common.remove_if_exists(self.test_dir)
        self._finish(archive)

    def _make_command(self, *targets: str) -> list[str]:
        return ["make", *([f"-j{self.jobs}"] if self.jobs > 1 else []), *targets]

    def _configure_build(self, archive: archive_spec, configure_args: list[str], env: dict[str, str]) -> None:
        source = self.source_path(archive)
        build = self.build_path(archive)
        configure = str(source / "configure")
        for command in (
            [configure, "--help"],
            [configure, *configure_args],
            self._make_command(),
            self._make_command("install"),
        ):
            common.run_command(command, archive.url, build, env)

    def _bootstrap_build(self, archive: archive_spec, configure_args: list[str], env: dict[str, str]) -> None:
        source = self.source_path(archive)
        build = str(self.build_path(archive))
        bootstrap = str(source / "bootstrap.sh")
        for command in (
            ["which", "g++"],
            ["gcc", "--version"],
            [bootstrap, "--help"],
            [bootstrap, *configure_args],
            ["./b2", "--help"],
            ["./b2", "--clean"],
            ["./b2", "--reconfigure"],
            ["./b2", "-a", "-d+2", "--build-dir", build],
            ["./b2", "-d+2", "--build-dir", build, "install"],
            ["./b2", "install"],
        ):
            common.run_command(command, archive.url, source, env)

    def summary(self) -> str:
        """生成启动时显示的环境信息"""

        gcc = common.run_command(["gcc", "--version"], env=self.build_env(), ignore_error=True, capture=True, echo=False, dry_run=False)
        uname = os.uname()
        return common.gccbld_info(
            "\n".join(
                (
                    common.separator_line,
                    "# Version    : gcc-6.4.0 2018-03-04",
                    f"# RootDir    : {self.root_dir}",
                    f"# ArchiveDir : {self.archive_dir}",
                    f"# RtfDir     : {self.rtf_dir}",
                    f"# SrcDir     : {self.src_dir}",
                    f"# BldDir     : {self.bld_dir}",
                    f"# TstDir     : {self.test_dir}",
                    f"# Gcc        : {shutil.which('gcc', path=self.build_env().get('PATH')) or ''}",
                    f"# GccVersion : {gcc.stdout.splitlines()[0] if gcc and gcc.stdout else ''}",
                    f"# Hostname   : {socket.gethostname()}",
                    f"# O/S        : {uname.sysname} {uname.release} {uname.version} {uname.machine}",
                    f"# Date       : {time.strftime('%a %b %d %H:%M:%S %Z %Y')}",
                    f"# Platform   : {self.platform}",
                    common.separator_line,
                )
            ),
            common.message_type.none,
        )

    def show_state(self) -> None:
        """打印所有包的构建进度"""

        for archive in self.archive_list:
            state = self.get_state(archive)
            pending = self.pending_stage(archive)
            suffix = f" ({pending} interrupted)" if pending else ""
            common.gccbld_print(f"{archive.dir_name:<24} {state.name}{suffix}")

    def completion_message(self) -> str:
        return common.gccbld_success(
            "\n".join(
                (
                    "",
                    "gcc-6.4.0 build completed successfully.",
                    "",
                    "To enable it in your environment:",
                    "",
                    f"    $ source {self.rtf_dir / 'bin' / 'gcc-enable'}",
                    "    $ gcc --version",
                    "    $ g++ --version",
                    "",
                    "To disable it:",
                    "",
                    f"    $ source {self.rtf_dir / 'bin' / 'gcc-disable'}",
                    "",
                    "Done.",
                )
            ),
            common.message_type.none,
        )

    def run_pipeline(self, run_test: bool = True) -> None:
        """依次进行下载、解压、构建三轮处理，然后生成环境脚本并运行冒烟测试
        已完成的阶段会被跳过，任何命令失败都会抛出command_error并中止后续所有阶段

        Args:
            run_test (bool, optional): 是否运行冒烟测试. 默认运行.
        """

        check_script_path(self.rtf_dir)
        env = self.build_env()
        for path in (self.archive_dir, self.rtf_dir, self.src_dir, self.bld_dir):
            common.mkdir(path)
        for current in stage:
            for archive in self.archive_list:
                getattr(self, current.name)(archive, env)
        generate_env_script(self.rtf_dir)
        if run_test:
            test_runner(self.test_dir, env).run()
        common.gccbld_print(self.completion_message())


__all__ = ["unset_variable_list", "package_state", "stage", "environment"]
