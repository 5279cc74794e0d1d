import re
import shutil
import typing
from collections.abc import Callable

from . import common

# 经过测试的平台列表
tested_platform_list: typing.Final[list[str]] = ["linux-centos-6.9-x86_64"]

# 未知平台的标识
unknown_platform: typing.Final[str] = "unk-unk-unk-unk"

# 查询函数，输入命令参数，返回去除首尾空白的输出，命令不存在或失败时返回None
query_type: typing.TypeAlias = Callable[[list[str]], str | None]


def run_query(command: list[str]) -> str | None:
    """运行查询主机信息的命令

    Args:
        command (list[str]): 要运行的命令

    Returns:
        str | None: 命令输出，失败时返回None
    """

    if not shutil.which(command[0]):
        return None
    result = common.run_command(command, ignore_error=True, capture=True, echo=False, dry_run=False)
    return result.stdout.strip() if result else None


def trim(string: str | None) -> str:
    """删除所有空白并转化为小写

    Args:
        string (str | None): 输入字符串

    Returns:
        str: 处理后的字符串
    """

    return re.sub(r"[ \t\r\n]", "", string or "").lower()


def _lsb_field(query: query_type, option: str) -> str:
    """获取lsb_release输出中:后的字段"""

    fields = trim(query(["lsb_release", option])).split(":", 1)
    return fields[1] if len(fields) == 2 else ""


def get_platform_root(query: query_type = run_query) -> str:
    """获取平台根名称，如gnu/linux、darwin、sunos

    Args:
        query (query_type, optional): 查询函数. 默认运行系统命令.

    Returns:
        str: 小写的平台根名称，无法获取时返回unknown
    """

    # solaris上的uname不支持-o选项，退回使用-s选项
    for option in ("-o", "-s"):
        if (result := query(["uname", option])) is not None:
            return result.lower()
    return "unknown"


def get_platform(query: query_type = run_query) -> str:
    """获取平台标识，格式为<plat>-<dist>-<ver>-<arch>
        plat: linux、sunos、macos
        dist: centos、rhel、nexenta、darwin
        ver : 5.5、6.4、10.9
        arch: x86_64、i86pc

    Args:
        query (query_type, optional): 查询函数. 默认运行系统命令.

    Returns:
        str: 平台标识，无法识别时返回unk-unk-unk-unk
    """

    plat = get_platform_root(query)
    match (plat):
        case "gnu/linux":
            dist = _lsb_field(query, "-i")
            release = _lsb_field(query, "-r")
            machine = trim(query(["uname", "-m"]))
            if dist.startswith("redhatenterprise"):
                # Red Hat的次版本号需要从代号中获取，保留发行版名称的尾部(如es、client)
                dist = f"rhel_{dist[len('redhatenterprise'):]}"
                release = f"{release}.{re.sub(r'[^0-9]', '', _lsb_field(query, '-c'))}"
            return f"linux-{dist}-{release}-{machine}"
        case "cygwin":
            return f"linux-{trim(query(['uname']))}"
        case "sunos":
            return f"sunos-{trim(query(['uname', '-v']))}-{trim(query(['uname', '-r']))}-{trim(query(['uname', '-m']))}"
        case "darwin":
            return f"macos-{trim(query(['uname', '-s']))}-{trim(query(['uname', '-r']))}-{trim(query(['uname', '-m']))}"
        case _:
            return unknown_platform


def check_platform(plat: str) -> bool:
    """检查平台是否在测试过的平台列表中，不在列表中时显示警告

    Args:
        plat (str): 平台标识

    Returns:
        bool: 平台是否经过测试
    """

    common.gccbld_print(common.gccbld_info(f"PLATFORM: {plat}"))
    if plat in tested_platform_list:
        return True
    common.gccbld_print(common.gccbld_warning(f"This platform ({plat}) has not been tested."))
    return False


__all__ = ["tested_platform_list", "unknown_platform", "run_query", "get_platform_root", "get_platform", "check_platform"]
