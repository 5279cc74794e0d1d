#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# PYTHON_ARGCOMPLETE_OK

import argparse
import os
from pathlib import Path

import argcomplete

from . import common
from .archive import archive_spec, default_archive_list, parse_archive_list
from .host_platform import check_platform, get_platform
from .pipeline import environment


class configure(common.basic_configure):
    """工具链构建配置"""

    root_dir: Path
    jobs: int
    archive_list: list[archive_spec]
    test: bool

    _origin_root: str  # 用户输入的根目录
    _origin_archives: list[str]  # 用户输入的归档url列表

    path_param_list = ("root",)

    def __init__(self, root: str = ".", jobs: int = 1, archives: list[str] | None = None, test: bool = True) -> None:
        """设置构建配置，可默认构造以提供默认配置

        Args:
            root (str, optional): 构建根目录，archives、src、bld、rtf均位于其下. 默认为当前目录.
            jobs (int, optional): make使用的并行任务数. 默认为1.
            archives (list[str] | None, optional): 按构建顺序排列的归档url列表. 默认使用内置列表.
            test (bool, optional): 是否在构建完成后运行冒烟测试. 默认运行.
        """

        super().__init__()
        self._origin_root = root
        self.register_encode_name_map("root", "_origin_root")
        self.root_dir = Path(root).expanduser().resolve()
        self.jobs = jobs
        self._origin_archives = list(archives) if archives is not None else list(default_archive_list)
        self.register_encode_name_map("archives", "_origin_archives")
        self.archive_list = parse_archive_list(self._origin_archives)
        self.test = test

    def check(self) -> None:
        """检查各个参数是否合法"""

        assert self.jobs > 0, f"Invalid jobs: {self.jobs}."
        assert self.archive_list, "The archive list is empty."


def _check_positional(root_list: list[str]) -> str:
    """根目录最多只能指定一个

    Args:
        root_list (list[str]): 位置参数列表

    Raises:
        RuntimeError: 位置参数多于一个

    Returns:
        str: 根目录
    """

    if len(root_list) > 1:
        raise RuntimeError(
            common.gccbld_error(f"too many command line arguments ({len(root_list)}), only zero or one is allowed", common.message_type.none)
        )
    return root_list[0] if root_list else "."


__all__ = ["configure"]


def main(argv: list[str] | None = None) -> int:
    default_config = configure()

    parser = argparse.ArgumentParser(
        description="Download, build and install a GCC and Boost toolchain under a single root directory.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    action = parser.add_argument("root", nargs="*", help="The root directory of the build tree.", default=[])
    setattr(action, "completer", common.dir_completer)
    configure.add_argument(parser)
    parser.add_argument("-j", "--jobs", type=int, help="Number of parallel make jobs.", default=default_config.jobs)
    parser.add_argument(
        "--test",
        action=argparse.BooleanOptionalAction,
        help="Whether to run the smoke tests after the build.",
        default=default_config.test,
    )
    parser.add_argument("--status", action="store_true", help="Print the state of every package and exit.")

    argcomplete.autocomplete(parser)
    errno = 0
    try:
        args = parser.parse_args(argv)
        root = _check_positional(args.root)
        # 根目录未指定时不覆盖配置文件中的值
        args.root = root
        current_config = configure.parse_args(args)
        current_config.check()
        current_config.save_config()

        os.umask(0)
        platform = get_platform()
        env = environment(current_config.root_dir, current_config.archive_list, current_config.jobs, platform)
        if args.status:
            env.show_state()
            common.status_counter.set_quiet(True)
        else:
            common.gccbld_print(env.summary())
            check_platform(platform)
            env.run_pipeline(current_config.test)
    except common.command_error as e:
        common.gccbld_print(e)
        # 被信号终止的命令返回码为负数，按shell的惯例转化为128+信号值
        errno = e.returncode if e.returncode >= 0 else 128 - e.returncode
    except Exception as e:
        common.gccbld_print(e)
        errno = 1
    finally:
        common.status_counter.show_status()
    return errno
