from pathlib import Path

from . import common

enable_script_name = "gcc-enable"
disable_script_name = "gcc-disable"

# 脚本中的路径位于双引号和sed的@分隔符之间，不能包含这些字符
unsafe_path_chars = "@'\"\\$`"


def path_segment(rtf_dir: Path) -> str:
    """gcc-enable插入到PATH前端的内容"""

    return f"{rtf_dir / 'bin'}:"


def library_path_segment(rtf_dir: Path) -> str:
    """gcc-enable插入到LD_LIBRARY_PATH前端的内容"""

    return f"{rtf_dir / 'lib64'}:{rtf_dir / 'lib'}:"


def sed_pattern(text: str) -> str:
    """转义sed基本正则表达式中的特殊字符，使text按字面匹配"""

    return "".join(f"\\{char}" if char in ".[*^" else char for char in text)


def enable_script(rtf_dir: Path) -> str:
    """生成gcc-enable的内容

    Args:
        rtf_dir (Path): 工具链安装路径

    Returns:
        str: 脚本内容
    """

    return (
        f'export PATH="{path_segment(rtf_dir)}$PATH"\n'
        f'export LD_LIBRARY_PATH="{library_path_segment(rtf_dir)}$LD_LIBRARY_PATH"\n'
    )


def disable_script(rtf_dir: Path) -> str:
    """生成gcc-disable的内容，通过sed删除gcc-enable插入的内容

    Args:
        rtf_dir (Path): 工具链安装路径

    Returns:
        str: 脚本内容
    """

    return (
        f"export PATH=\"$(echo \"$PATH\" | sed -e 's@{sed_pattern(path_segment(rtf_dir))}@@')\"\n"
        f"export LD_LIBRARY_PATH=\"$(echo \"$LD_LIBRARY_PATH\" | sed -e 's@{sed_pattern(library_path_segment(rtf_dir))}@@')\"\n"
    )


def enable_value(rtf_dir: Path, environ: dict[str, str]) -> dict[str, str]:
    """计算执行gcc-enable后PATH和LD_LIBRARY_PATH的值

    Args:
        rtf_dir (Path): 工具链安装路径
        environ (dict[str, str]): 执行前的环境变量

    Returns:
        dict[str, str]: 执行后的PATH和LD_LIBRARY_PATH
    """

    return {
        "PATH": path_segment(rtf_dir) + environ.get("PATH", ""),
        "LD_LIBRARY_PATH": library_path_segment(rtf_dir) + environ.get("LD_LIBRARY_PATH", ""),
    }


def disable_value(rtf_dir: Path, environ: dict[str, str]) -> dict[str, str]:
    """计算执行gcc-disable后PATH和LD_LIBRARY_PATH的值，与sed相同，只删除第一处匹配

    Args:
        rtf_dir (Path): 工具链安装路径
        environ (dict[str, str]): 执行前的环境变量

    Returns:
        dict[str, str]: 执行后的PATH和LD_LIBRARY_PATH
    """

    return {
        "PATH": environ.get("PATH", "").replace(path_segment(rtf_dir), "", 1),
        "LD_LIBRARY_PATH": environ.get("LD_LIBRARY_PATH", "").replace(library_path_segment(rtf_dir), "", 1),
    }


def check_script_path(rtf_dir: Path) -> None:
    """检查安装路径能否写入环境脚本

    Raises:
        RuntimeError: 安装路径中包含unsafe_path_chars中的字符
    """

    if unsafe := sorted({char for char in str(rtf_dir) if char in unsafe_path_chars}):
        raise RuntimeError(common.gccbld_error(f"cannot generate environment scripts for {rtf_dir}, it contains {' '.join(unsafe)}"))


def generate_env_script(rtf_dir: Path) -> bool:
    """在<rtf>/bin下生成gcc-enable和gcc-disable，gcc-enable已存在时跳过

    Args:
        rtf_dir (Path): 工具链安装路径

    Returns:
        bool: 是否生成了脚本

    Raises:
        RuntimeError: 安装路径中包含无法写入脚本的字符
    """

    bin_dir = rtf_dir / "bin"
    if (bin_dir / enable_script_name).exists():
        return False
    check_script_path(rtf_dir)
    common.gccbld_print(common.gccbld_note(f"Creating {enable_script_name} and {disable_script_name}"))
    common.mkdir(bin_dir)
    common.write_text(bin_dir / enable_script_name, enable_script(rtf_dir), mode=0o755)
    common.write_text(bin_dir / disable_script_name, disable_script(rtf_dir), mode=0o755)
    return True


__all__ = [
    "enable_script_name",
    "disable_script_name",
    "enable_script",
    "disable_script",
    "enable_value",
    "disable_value",
    "check_script_path",
    "generate_env_script",
    "sed_pattern",
    "unsafe_path_chars",
]
