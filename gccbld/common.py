# PYTHON_ARGCOMPLETE_OK

import argparse
import enum
import functools
import inspect
import json
import os
import shutil
import subprocess
import typing
from collections.abc import Callable
from enum import IntEnum, auto
from pathlib import Path
from typing import Self

import colorama

# 命令回显使用的分隔线
separator_line = "# " + "=" * 64


class message_type(IntEnum):
    """gccbld显示消息的前缀

    Attributes:
        gccbld         : 添加[gccbld]前缀
        gccbld_internal: 添加[gccbld internal]前缀
        none           : 不添加前缀
    """

    gccbld = auto()
    gccbld_internal = auto()
    none = auto()


class color(enum.StrEnum):
    """cli使用的颜色

    Attributes:
        warning: 警告用色
        error  : 错误用色
        success: 成功用色
        note   : 提示用色
        reset  : 恢复默认配色
        gccbld : 输出gccbld标志
    """

    warning = colorama.Fore.MAGENTA
    error = colorama.Fore.RED
    success = colorama.Fore.GREEN
    note = colorama.Fore.LIGHTBLUE_EX
    reset = colorama.Fore.RESET
    gccbld = f"{colorama.Fore.CYAN}[gccbld]{reset}"
    gccbld_internal = f"{colorama.Fore.CYAN}[gccbld internal]{reset}"

    def wrapper(self, string: str) -> str:
        """以指定颜色输出string，然后恢复默认配色

        Args:
            string (str): 要输出的字符串

        Returns:
            str: 输出字符串
        """

        return f"{self}{string}{color.reset}"

    @staticmethod
    def get_prefix(message_prefix: message_type) -> str:
        match (message_prefix):
            case message_type.gccbld:
                return color.gccbld + " "
            case message_type.gccbld_internal:
                return color.gccbld_internal + " "
            case message_type.none:
                return ""


class status_counter:
    """当前程序状态的计数"""

    class __counter:
        error: int = 0
        warning: int = 0
        note: int = 0
        info: int = 0
        success: int = 0

    __quiet: bool = False

    @classmethod
    def clear(cls) -> None:
        """清空计数"""

        for key in filter(lambda key: not key.startswith("_"), [*vars(cls.__counter)]):
            setattr(cls.__counter, key, 0)

    @classmethod
    def add_error(cls) -> None:
        cls.__counter.error += 1

    @classmethod
    def add_warning(cls) -> None:
        cls.__counter.warning += 1

    @classmethod
    def add_note(cls) -> None:
        cls.__counter.note += 1

    @classmethod
    def add_info(cls) -> None:
        cls.__counter.info += 1

    @classmethod
    def add_success(cls) -> None:
        cls.__counter.success += 1

    @classmethod
    def get_counter(cls, name: str) -> int:
        assert name in ("error", "warning", "note", "info", "success")
        return typing.cast(int, getattr(cls.__counter, name))

    @classmethod
    def get_quiet(cls) -> bool:
        return cls.__quiet

    @classmethod
    def set_quiet(cls, quiet: bool) -> None:
        cls.__quiet = quiet

    @classmethod
    def show_status(cls) -> None:
        """根据全局状态显示当前状态计数"""

        if not cls.__quiet:
            print(
                color.gccbld,
                color.error.wrapper(f"error: {cls.__counter.error}"),
                color.warning.wrapper(f"warning: {cls.__counter.warning}"),
                color.note.wrapper(f"note: {cls.__counter.note}"),
                f"info: {cls.__counter.info}",
                color.success.wrapper(f"success: {cls.__counter.success}"),
            )


def gccbld_warning(string: str, message_prefix: message_type = message_type.gccbld) -> str:
    """返回gccbld的警告信息

    Args:
        string (str): 警告字符串
        message_prefix (message_type, optional): 前缀类型

    Returns:
        str: [gccbld] WARNING: string
    """

    status_counter.add_warning()
    return f"{color.get_prefix(message_prefix)}{color.warning.wrapper(f'WARNING: {string}')}"


def gccbld_error(string: str, message_prefix: message_type = message_type.gccbld) -> str:
    """返回gccbld的错误信息，多行信息的后续行与首行对齐

    Args:
        string (str): 错误字符串
        message_prefix (message_type, optional): 前缀类型

    Returns:
        str: [gccbld] ERROR: string
    """

    status_counter.add_error()
    lines = string.split("\n")
    text = "\n".join(("ERROR: " if i == 0 else " " * 7) + line for i, line in enumerate(lines))
    return f"{color.get_prefix(message_prefix)}{color.error.wrapper(text)}"


def gccbld_success(string: str, message_prefix: message_type = message_type.gccbld) -> str:
    """返回gccbld的成功信息

    Args:
        string (str): 成功字符串
        message_prefix (message_type, optional): 前缀类型

    Returns:
        str: [gccbld] string
    """

    status_counter.add_success()
    return f"{color.get_prefix(message_prefix)}{color.success.wrapper(string)}"


def gccbld_note(string: str, message_prefix: message_type = message_type.gccbld) -> str:
    """返回gccbld的提示信息

    Args:
        string (str): 提示字符串
        message_prefix (message_type, optional): 前缀类型

    Returns:
        str: [gccbld] INFO: string
    """

    status_counter.add_note()
    return f"{color.get_prefix(message_prefix)}{color.note.wrapper(f'INFO: {string}')}"


def gccbld_info(string: str, message_prefix: message_type = message_type.gccbld) -> str:
    """返回gccbld的普通信息

    Args:
        string (str): 提示字符串
        message_prefix (message_type, optional): 前缀类型

    Returns:
        str: [gccbld] string
    """

    status_counter.add_info()
    return f"{color.get_prefix(message_prefix)}{string}"


class command_dry_run:
    """是否只显示命令而不实际执行"""

    __dry_run: bool = False

    @classmethod
    def get(cls) -> bool:
        return cls.__dry_run

    @classmethod
    def set(cls, dry_run: bool) -> None:
        cls.__dry_run = dry_run


class gccbld_quiet:
    """是否显示gccbld的提示信息"""

    __quiet: bool = False

    @classmethod
    def get(cls) -> bool:
        return cls.__quiet

    @classmethod
    def set(cls, quiet: bool) -> None:
        cls.__quiet = quiet


def gccbld_print(
    *values: object,
    sep: str | None = " ",
    end: str | None = "\n",
) -> None:
    """根据全局设置决定是否需要打印信息

    Args:
        sep (str | None, optional): 分隔符. 默认为空格.
        end (str | None, optional): 行尾序列. 默认为换行.
    """

    if not gccbld_quiet.get():
        print(*values, sep=sep, end=end, flush=True)


def need_dry_run(dry_run: bool | None) -> bool:
    """根据输入和全局状态共同判断是否只回显而不运行命令

    Args:
        dry_run (bool | None): 当前是否只回显而不运行命令

    Returns:
        bool: 是否只回显而不运行命令
    """

    return bool(dry_run is None and command_dry_run.get() or dry_run)


def support_dry_run[
    **P, R
](echo_fn: Callable[..., str | None] | None = None, end: str | None = None) -> Callable[[Callable[P, R]], Callable[P, R | None]]:
    """根据dry_run参数和command_dry_run中的全局状态确定是否只回显命令而不执行，若fn没有dry_run参数则只会使用全局状态

    Args:
        echo_fn (Callable[..., str | None] | None, optional): 回调函数，返回要显示的信息或None，无回调或返回None时不显示
            所有参数需要能在主函数的参数列表中找到，默认为无回调.
        end (str | None, optional): 在输出回显内容后使用的换行符，默认为换行.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R | None]:
        signature = inspect.signature(fn)

        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            bound_args = signature.bind(*args, **kwargs)
            bound_args.apply_defaults()
            if echo_fn:
                param_list: list[typing.Any] = []
                for key in inspect.signature(echo_fn).parameters.keys():
                    assert key in bound_args.arguments, gccbld_error(
                        f"The param {key} of echo_fn is not in the param list of fn.", message_type.gccbld_internal
                    )
                    param_list.append(bound_args.arguments[key])
                echo = echo_fn(*param_list)
                if echo is not None:
                    gccbld_print(echo, end=end)
            dry_run: bool | None = bound_args.arguments.get("dry_run")
            assert isinstance(dry_run, bool | None), gccbld_error("The param dry_run must be a bool or None.", message_type.gccbld_internal)
            if need_dry_run(dry_run):
                return None
            return fn(*bound_args.args, **bound_args.kwargs)

        return wrapper

    return decorator


class command_error(RuntimeError):
    """外部命令以非0状态退出

    Attributes:
        returncode: 命令的退出状态，程序将以该状态退出
    """

    returncode: int

    def __init__(self, message: str, returncode: int) -> None:
        super().__init__(message)
        self.returncode = returncode


def _command_string(command: str | list[str]) -> str:
    return command if isinstance(command, str) else " ".join(str(item) for item in command)


def _run_command_echo(command: str | list[str], archive: str | None, cwd: Path | None, echo: bool) -> str | None:
    """运行命令前显示命令头

    Args:
        command (str | list[str]): 要运行的命令
        archive (str | None): 命令所属的包
        cwd (Path | None): 命令的工作目录
        echo (bool): 是否回显

    Returns:
        str | None: 回显信息
    """

    if not echo:
        return None
    lines = ["", f" {separator_line}"]
    if archive:
        lines.append(f" # Archive: {archive}")
    lines.append(f" # PWD: {cwd or Path.cwd()}")
    lines.append(f" # CMD: {_command_string(command)}")
    lines.append(f" {separator_line}")
    return gccbld_info("\n".join(lines), message_type.none)


@support_dry_run(_run_command_echo)
def run_command(
    command: str | list[str],
    archive: str | None = None,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    ignore_error: bool = False,
    capture: bool = False,
    echo: bool = True,
    dry_run: bool | None = None,
) -> subprocess.CompletedProcess[str] | None:
    """运行指定命令并打印退出状态, 若不忽略错误, 则在命令执行出错时抛出command_error

    Args:
        command (str | list[str]): 要运行的命令，使用str则在shell内运行，使用list[str]则直接运行
        archive (str | None, optional): 命令所属的包，用于命令头. 默认为None.
        cwd (Path | None, optional): 命令的工作目录. 默认为当前工作目录.
        env (dict[str, str] | None, optional): 命令使用的完整环境变量. 默认继承当前进程.
        ignore_error (bool, optional): 是否忽略错误. 默认不忽略错误.
        capture (bool, optional): 是否捕获命令输出，默认为不捕获.
        echo (bool, optional): 是否回显信息，设置为False将不回显任何信息，包括退出状态，默认为回显.
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.

    Raises:
        command_error: 命令执行失败且ignore_error为False时抛出异常

    Returns:
        None | subprocess.CompletedProcess[str]: 在命令正常执行结束后返回执行结果，否则返回None
    """

    stdout: int | None
    if capture:
        stdout = subprocess.PIPE
    elif echo:
        stdout = None
    else:
        stdout = subprocess.DEVNULL
    try:
        result = subprocess.run(
            command if isinstance(command, str) else [str(item) for item in command],
            stdout=stdout,
            stderr=None if echo else subprocess.DEVNULL,
            shell=isinstance(command, str),
            cwd=cwd,
            env=env,
            text=True,
        )
        returncode = result.returncode
    except OSError as e:
        # 命令不存在等情况按照shell的约定返回127
        result = None
        returncode = 127
        if echo:
            gccbld_print(gccbld_warning(f"{e}"))
    if echo:
        gccbld_print(f"STATUS = {returncode}")
    if returncode != 0:
        if not ignore_error:
            raise command_error(gccbld_error(f'Command "{_command_string(command)}" failed with status {returncode}.'), returncode)
        return None
    return result


def _mkdir_echo(path: Path) -> str:
    return gccbld_info(f"Create directory {path}.")


@support_dry_run(_mkdir_echo)
def mkdir(path: Path, remove_if_exist: bool = False, dry_run: bool | None = None) -> None:
    """创建目录

    Args:
        path (Path): 要创建的目录
        remove_if_exist (bool, optional): 是否先删除已存在的同名目录. 默认保留已存在的目录.
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """

    if remove_if_exist and path.exists():
        shutil.rmtree(path)
    os.makedirs(path, exist_ok=True)


def _remove_echo(path: Path) -> str:
    return gccbld_info(f"Remove {path}.")


@support_dry_run(_remove_echo)
def remove(path: Path, dry_run: bool | None = None) -> None:
    """删除指定路径

    Args:
        path (Path): 要删除的路径
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        os.remove(path)


@support_dry_run()
def remove_if_exists(path: Path, dry_run: bool | None = None) -> bool:
    """如果指定路径存在则删除指定路径

    Args:
        path (Path): 要删除的路径
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.

    Returns:
        bool: 是否发生了删除
    """

    if path.exists() or path.is_symlink():
        remove(path)
        return True
    else:
        return False


def _rename_echo(src: Path, dst: Path) -> str:
    return gccbld_info(f"Rename {src} -> {dst}.")


@support_dry_run(_rename_echo)
def rename(src: Path, dst: Path, dry_run: bool | None = None) -> None:
    """重命名指定路径

    Args:
        src (Path): 源路径
        dst (Path): 目标路径
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """

    src.replace(dst)


def _write_text_echo(path: Path, append: bool) -> str:
    return gccbld_info(f"{'Append' if append else 'Write'} {path}.")


@support_dry_run(_write_text_echo)
def write_text(path: Path, text: str, append: bool = False, mode: int | None = None, dry_run: bool | None = None) -> None:
    """写入或追加文本文件

    Args:
        path (Path): 文件路径
        text (str): 文件内容
        append (bool, optional): 是否追加到文件末尾. 默认覆盖原文件.
        mode (int | None, optional): 写入后设置的权限位. 默认不修改.
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """

    with path.open("a" if append else "w") as file:
        file.write(text)
    if mode is not None:
        path.chmod(mode)


def resolve_path(path: str | Path, base_path: Path) -> Path:
    """将相对路径转化为基于base_path的绝对路径，已经是绝对路径则不变

    Args:
        path (str | Path): 输入路径
        base_path (Path): 基路径

    Returns:
        Path: 转化后的绝对路径
    """

    path = Path(path).expanduser()
    if not path.is_absolute():
        return (base_path / path).resolve()
    else:
        return path.resolve()


def _path_complete(prefix: str, need_file: bool, allowed_suffix: list[str]) -> list[str]:
    """生成路径补全信息

    Args:
        prefix (str): 已输入的部分路径
        need_file (bool): 是否需要列出可选文件
        allowed_suffix (list[str]): 接受的文件后缀列表，为[]表示接受所有后缀，只有当need_file为True时有效

    Returns:
        list[str]: 可选路径列表
    """

    incomplete_path = Path(prefix)
    complete_prefix = incomplete_path if prefix.endswith(("/", "\\")) or not prefix else incomplete_path.parent
    absolute_path = complete_prefix.expanduser()
    if not absolute_path.is_dir():
        return []

    result: list[str] = []
    for path in absolute_path.iterdir():
        # 在用户没有明确输入.时，不显示隐藏项目
        if not Path(prefix).name.startswith(".") and path.name.startswith("."):
            continue
        if path.is_file():
            if not need_file:
                continue
            if allowed_suffix and path.suffix not in allowed_suffix:
                continue
        path_str = str(complete_prefix / path.name)
        if path.is_dir():
            path_str += "/"
        result.append(path_str)
    return sorted(result)


class files_completer:
    """支持文件补全"""

    def __init__(self, allowed_suffix: str | list[str] = []) -> None:
        if isinstance(allowed_suffix, str):
            allowed_suffix = [allowed_suffix]
        self.allowed_suffix = allowed_suffix

    def __call__(self, prefix: str, **_: typing.Any) -> list[str]:
        return _path_complete(prefix, True, self.allowed_suffix)


def dir_completer(prefix: str, **_: typing.Any) -> list[str]:
    """支持目录补全"""

    return _path_complete(prefix, False, [])


class basic_configure:
    """配置基类，构造函数的参数即为可导入导出的配置项

    Attributes:
        encode_name_map: 编码时使用的构造函数参数名->成员名映射表
    """

    _args: argparse.Namespace | None = None  # 解析后的命令选项

    encode_name_map: typing.ClassVar[dict[str, str]] = {}

    @classmethod
    def add_argument(cls, parser: argparse.ArgumentParser) -> None:
        """为argparse添加--export、--import、--dry-run和--quiet选项

        Args:
            parser (argparse.ArgumentParser): 命令行解析器
        """

        action = parser.add_argument(
            "--export",
            dest="export_file",
            type=str,
            help="Export settings to specific file.",
        )
        setattr(action, "completer", files_completer(".json"))
        action = parser.add_argument(
            "--import",
            dest="import_file",
            type=str,
            help="Import settings from specific file. "
            "Relative paths in the configure file are resolved against the directory of the configure file.",
        )
        setattr(action, "completer", files_completer(".json"))
        parser.add_argument(
            "--dry-run",
            dest="dry_run",
            action=argparse.BooleanOptionalAction,
            help="Preview the commands without actually executing them.",
            default=False,
        )
        parser.add_argument(
            "-q",
            "--quiet",
            action="count",
            help="Increase quiet level (use -q, -qq). "
            "Level 1 will disable message echos of this program. "
            "Level 2 and above will disable the echo of status counter in this program.",
            default=0,
        )

    path_param_list: typing.ClassVar[tuple[str, ...]] = ()  # 配置文件中需要基于配置文件所在目录解析的路径参数

    @classmethod
    def load_config(cls, args: argparse.Namespace) -> dict[str, typing.Any]:
        """从配置文件中加载配置，配置文件中的相对路径基于配置文件所在目录转化为绝对路径

        Args:
            args (argparse.Namespace): 用户输入参数

        Returns:
            dict[str, typing.Any]: 解码得到的字典

        Raises:
            RuntimeError: 加载失败抛出异常
        """

        if import_file := getattr(args, "import_file", None):
            file_path = Path(import_file)
            try:
                with file_path.open() as file:
                    import_config_list = json.load(file)
                assert isinstance(import_config_list, dict), "The configure file must begin with a object."
            except Exception as e:
                raise RuntimeError(gccbld_error(f'Import file "{file_path}" failed: {e}'))
            import_config_list = typing.cast(dict[str, typing.Any], import_config_list)
            for key in cls.path_param_list:
                if key in import_config_list:
                    import_config_list[key] = str(resolve_path(import_config_list[key], file_path.parent.resolve()))
            return import_config_list
        else:
            return {}

    @classmethod
    def _get_default_param_list(cls) -> dict[str, typing.Any]:
        """获取构造函数的默认参数

        Returns:
            dict[str, typing.Any]: 默认参数列表
        """

        return {
            param.name: param.default
            for param in inspect.signature(cls.__init__).parameters.values()
            if param.name != "self" and param.default is not inspect.Parameter.empty
        }

    @classmethod
    def parse_args(cls, args: argparse.Namespace) -> Self:
        """解析命令选项并根据选项构造对象，会自动解析配置文件
        优先级为：命令行中显式给出的值 > 配置文件中的值 > 默认值

        Args:
            args (argparse.Namespace): 命令选项

        Returns:
            Self: 构造的对象
        """

        command_dry_run.set(getattr(args, "dry_run", False))
        quiet = getattr(args, "quiet", 0)
        gccbld_quiet.set(quiet >= 1)
        status_counter.set_quiet(quiet >= 2)

        default_list = cls._get_default_param_list()
        result_list: dict[str, typing.Any] = cls.load_config(args)
        args_list = vars(args)
        for key, default in default_list.items():
            # 命令行中未修改的选项不覆盖配置文件
            if key in args_list and args_list[key] != default:
                result_list[key] = args_list[key]
        result = cls(**{key: value for key, value in result_list.items() if key in default_list})
        result._args = args
        return result

    def register_encode_name_map(self, param_name: str, attribute_name: str) -> None:
        """将param_name->attribute_name的映射关系记录到类的encode_name_map表
        注意：需要先给属性赋值，保证属性存在后再进行注册

        Args:
            param_name (str): 构造函数参数名
            attribute_name (str): 成员属性名
        """

        cls = type(self)
        assert param_name in self._get_default_param_list(), gccbld_error(
            f"The param {param_name} is not a param of the __init__ function.", message_type.gccbld_internal
        )
        assert hasattr(self, attribute_name), gccbld_error(
            f"The attribute {attribute_name} is not an attribute of self.", message_type.gccbld_internal
        )
        if "encode_name_map" not in vars(cls):
            cls.encode_name_map = {}
        cls.encode_name_map[param_name] = attribute_name

    def encode(self) -> dict[str, typing.Any]:
        """编码self到字典，可供序列化使用
        根据构造函数参数列表得到参数名key，然后通过encode_name_map将key转化为对象的属性名，最后将属性序列化

        Returns:
            dict[str, typing.Any]: 编码后的字典
        """

        output_list: dict[str, typing.Any] = {}
        for key in self._get_default_param_list():
            value = getattr(self, self.encode_name_map.get(key, key))
            match (value):
                case set() | tuple():
                    output_list[key] = list(typing.cast(typing.Iterable[object], value))
                case Path():
                    output_list[key] = str(value)
                case _:
                    output_list[key] = value
        return output_list

    def _save_config_echo(self) -> str | None:
        file = getattr(self._args, "export_file", None)
        return gccbld_info(f"Save settings -> {file}.") if file else None

    @support_dry_run(_save_config_echo)
    def save_config(self) -> None:
        """将配置保存到文件，使用json格式

        Raises:
            RuntimeError: 保存失败抛出异常
        """

        if export_file := getattr(self._args, "export_file", None):
            file_path = Path(export_file)
            try:
                file_path.write_text(json.dumps(self.encode(), indent=4))
            except Exception as e:
                raise RuntimeError(gccbld_error(f'Export settings to file "{file_path}" failed: {e}'))


assert __name__ != "__main__", "Import this file instead of running it directly."
