import enum
import re
import shutil
import typing
from collections.abc import Callable
from pathlib import Path

import packaging.version as version

from . import common
from .archive import parse_name_version

# 作为gcc一部分构建的附加语言包，不单独构建
addon_pattern: typing.Final[re.Pattern[str]] = re.compile(r"^gcc-g\+\+.*")

# 需要静态链接的cygwin平台
cygwin_platform: typing.Final[str] = "linux-cygwin_nt-6.1-wow64"

# Mac OS X下构建libiconv需要的符号别名
libiconv_darwin_patch: typing.Final[str] = """
/* These symbol names are needed to build on Mac OS X. */
#ifndef _LIBICONV_H_PATCH
#define _LIBICONV_H_PATCH
#define _iconv       iconv
#define _iconv_close iconv_close
#define _iconv_open  iconv_open
#endif  /* _LIBICONV_H_PATCH */
"""

# ppl的mp_std_bits.defs.hh中需要的gmp版本检查
gmp_version_check: typing.Final[str] = "__GNU_MP_VERSION < 5  || (__GNU_MP_VERSION == 5 && __GNU_MP_VERSION_MINOR < 1)"


class build_style(enum.StrEnum):
    """包的构建方式

    Attributes:
        configure: 在构建目录中运行configure、make和make install
        bootstrap: 在源代码目录中运行bootstrap.sh和b2，如boost
    """

    configure = "configure"
    bootstrap = "bootstrap"


class package_kind(enum.StrEnum):
    """受支持的包，值为包目录名的前缀"""

    autoconf = "autoconf-"
    binutils = "binutils-"
    boost = "boost_"
    cloog = "cloog-"
    gcc = "gcc-"
    glibc = "glibc-"
    gmp = "gmp-"
    libiconv = "libiconv-"
    m4 = "m4-"
    mpc = "mpc-"
    mpfr = "mpfr-"
    ppl = "ppl-"

    @classmethod
    def classify(cls, dir_name: str) -> "package_kind":
        """根据包目录名鉴别包种类

        Args:
            dir_name (str): 包目录名，如gmp-6.1.2

        Raises:
            RuntimeError: 未知的包

        Returns:
            package_kind: 包种类
        """

        for kind in cls:
            if dir_name.startswith(kind):
                return kind
        raise RuntimeError(common.gccbld_error(f"unrecognized package: {dir_name}"))


class build_context:
    """构建单个包时使用的路径和平台信息"""

    rtf_dir: Path  # 安装路径，所有包共用
    bld_dir: Path  # 所有包的构建目录的根目录
    source_dir: Path  # 当前包的源代码目录
    platform: str  # 当前平台标识

    def __init__(self, rtf_dir: Path, bld_dir: Path, source_dir: Path, platform: str) -> None:
        self.rtf_dir = rtf_dir
        self.bld_dir = bld_dir
        self.source_dir = source_dir
        self.platform = platform

    @property
    def prefix_option(self) -> str:
        return f"--prefix={self.rtf_dir}"

    def static_option(self) -> list[str]:
        """cygwin下gmp、mpc、ppl只构建静态库"""

        return ["--enable-static", "--disable-shared"] if self.platform == cygwin_platform else []

    def find_gmp_build_dir(self) -> str:
        """查找gmp的构建目录，存在多个时选择版本最新的

        Returns:
            str: gmp构建目录，未找到时返回通配符形式的路径
        """

        gmp_dir_list = [path for path in self.bld_dir.glob(f"{package_kind.gmp}*") if path.is_dir()]
        if not gmp_dir_list:
            return str(self.bld_dir / f"{package_kind.gmp}*")

        def version_key(path: Path) -> tuple[version.Version, str]:
            return parse_name_version(path.name)[1] or version.Version("0"), path.name

        return str(max(gmp_dir_list, key=version_key))


class build_profile:
    """一类包的构建配置

    Attributes:
        configure_args: configure或bootstrap.sh使用的选项
        style         : 构建方式
        patch_list    : 首次构建前对源代码进行的修改，每个修改都只会进行一次
    """

    configure_args: list[str]
    style: build_style
    patch_list: list[Callable[[build_context], None]]

    def __init__(
        self,
        configure_args: list[str],
        style: build_style = build_style.configure,
        patch_list: list[Callable[[build_context], None]] | None = None,
    ) -> None:
        self.configure_args = configure_args
        self.style = style
        self.patch_list = patch_list or []

    def apply_patches(self, context: build_context) -> None:
        """依次对源代码进行修改

        Args:
            context (build_context): 构建上下文
        """

        for patch in self.patch_list:
            patch(context)


def _patch_file_echo(path: Path) -> str:
    return common.gccbld_info(f"Patch {path}, origin file is saved to {path.name}.orig.")


@common.support_dry_run(_patch_file_echo)
def patch_file(path: Path, transform: Callable[[str], str], dry_run: bool | None = None) -> None:
    """将文件备份到<path>.orig，然后写入修改后的内容，备份文件同时作为已修改的标记

    Args:
        path (Path): 要修改的文件
        transform (Callable[[str], str]): 修改函数，输入原文件内容，返回修改后的内容
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """

    backup = path.with_name(f"{path.name}.orig")
    shutil.copy2(path, backup)
    # 使用latin-1保证任意字节都能原样写回
    path.write_text(transform(backup.read_text(encoding="latin-1")), encoding="latin-1")


def patch_libiconv(context: build_context) -> None:
    """Mac OS X下为iconv头文件模板追加符号别名

    Args:
        context (build_context): 构建上下文
    """

    if not context.platform.startswith("macos-"):
        return
    for name in ("iconv.h.build.in", "iconv.h.in"):
        path = context.source_dir / "include" / name
        if not path.exists():
            continue
        if "_LIBICONV_H_PATCH" in path.read_text(encoding="latin-1"):
            common.gccbld_print(common.gccbld_note(f"{path} is already patched."))
            continue
        common.write_text(path, libiconv_darwin_patch, append=True)


def replace_pax(text: str) -> str:
    """pax -r需要从stdin读取输入，会打断构建流程，替换为tar -xf"""

    return text.replace("am__untar='pax -r'", "am__untar='tar -xf'  #am__untar='pax -r'")


def guard_mp_std_bits(text: str) -> str:
    """为namespace std块添加gmp版本检查，并将tininess_before映射到tinyness_before

    Args:
        text (str): mp_std_bits.defs.hh的内容

    Returns:
        str: 修改后的内容
    """

    result: list[str] = []
    for line in text.splitlines(keepends=True):
        fields = line.split()
        if fields[:2] == ["namespace", "std"]:
            result.append("// Automatically patched by gccbld.\n")
            result.append("#define tininess_before tinyness_before\n")
            result.append(f"#if {gmp_version_check}\n")
        result.append(line if line.endswith("\n") else f"{line}\n")
        if fields[:3] == ["}", "//", "namespace"]:
            result.append(f"#endif  // #if {gmp_version_check}\n")
    return "".join(result)


def patch_ppl(context: build_context) -> None:
    """修改ppl的configure和mp_std_bits.defs.hh，已有.orig备份时跳过

    Args:
        context (build_context): 构建上下文
    """

    configure = context.source_dir / "configure"
    if not configure.with_name("configure.orig").exists():
        patch_file(configure, replace_pax)

    src = context.source_dir / "src" / "mp_std_bits.defs.hh"
    if src.exists() and not src.with_name(f"{src.name}.orig").exists():
        if "__GNU_MP_VERSION" not in src.read_text(encoding="latin-1"):
            patch_file(src, guard_mp_std_bits)


class profile_list:
    """各个包的构建配置，函数名与package_kind的成员名一致"""

    @staticmethod
    def autoconf(context: build_context) -> build_profile:
        return build_profile([context.prefix_option])

    @staticmethod
    def binutils(context: build_context) -> build_profile:
        """binutils在-Werror下无法编译，需要--disable-werror"""

        rtf = context.rtf_dir
        return build_profile(
            [
                "--disable-cloog-version-check",
                "--disable-ppl-version-check",
                "--disable-werror",
                "--enable-cloog-backend=isl",
                "--enable-lto",
                "--enable-libssp",
                "--enable-gold",
                context.prefix_option,
                f"--with-cloog={rtf}",
                f"--with-gmp={rtf}",
                f"--with-mlgmp={rtf}",
                f"--with-mpc={rtf}",
                f"--with-mpfr={rtf}",
                f"--with-ppl={rtf}",
                f"CC={rtf / 'bin' / 'gcc'}",
                f"CXX={rtf / 'bin' / 'g++'}",
            ]
        )

    @staticmethod
    def boost(context: build_context) -> build_profile:
        """boost只能在源代码目录中构建"""

        return build_profile([context.prefix_option, "--with-python=python3"], build_style.bootstrap)

    @staticmethod
    def cloog(context: build_context) -> build_profile:
        return build_profile([context.prefix_option, f"--with-gmp-builddir={context.find_gmp_build_dir()}", "--with-gmp=build"])

    @staticmethod
    def gcc(context: build_context) -> build_profile:
        rtf = context.rtf_dir
        return build_profile(
            [
                "--disable-cloog-version-check",
                "--disable-ppl-version-check",
                "--disable-multilib",
                "--enable-cloog-backend=isl",
                "--enable-gold",
                "--enable-languages=c,c++",
                "--enable-lto",
                "--enable-libssp",
                context.prefix_option,
                f"--with-cloog={rtf}",
                f"--with-gmp={rtf}",
                f"--with-isl={rtf}",
                f"--with-mlgmp={rtf}",
                f"--with-mpc={rtf}",
                f"--with-mpfr={rtf}",
                f"--with-ppl={rtf}",
            ]
        )

    @staticmethod
    def glibc(context: build_context) -> build_profile:
        rtf = context.rtf_dir
        return build_profile(
            [
                "--enable-static-nss=no",
                context.prefix_option,
                f"--with-binutils={rtf}",
                "--with-elf",
                f"CC={rtf / 'bin' / 'gcc'}",
                f"CXX={rtf / 'bin' / 'g++'}",
            ]
        )

    @staticmethod
    def gmp(context: build_context) -> build_profile:
        return build_profile(["--enable-cxx", context.prefix_option, *context.static_option()])

    @staticmethod
    def libiconv(context: build_context) -> build_profile:
        return build_profile([context.prefix_option], patch_list=[patch_libiconv])

    @staticmethod
    def m4(context: build_context) -> build_profile:
        return build_profile([context.prefix_option])

    @staticmethod
    def mpc(context: build_context) -> build_profile:
        rtf = context.rtf_dir
        return build_profile([context.prefix_option, f"--with-gmp={rtf}", f"--with-mpfr={rtf}", *context.static_option()])

    @staticmethod
    def mpfr(context: build_context) -> build_profile:
        return build_profile([context.prefix_option, f"--with-gmp={context.rtf_dir}"])

    @staticmethod
    def ppl(context: build_context) -> build_profile:
        """cygwin未实现long double，只构建静态库"""

        return build_profile([context.prefix_option, f"--with-gmp={context.rtf_dir}", *context.static_option()], patch_list=[patch_ppl])

    @staticmethod
    def get_profile(dir_name: str, context: build_context) -> build_profile:
        """根据包目录名获取构建配置

        Args:
            dir_name (str): 包目录名
            context (build_context): 构建上下文

        Raises:
            RuntimeError: 未知的包

        Returns:
            build_profile: 构建配置
        """

        kind = package_kind.classify(dir_name)
        return typing.cast(build_profile, getattr(profile_list, kind.name)(context))


__all__ = [
    "addon_pattern",
    "cygwin_platform",
    "build_style",
    "package_kind",
    "build_context",
    "build_profile",
    "patch_file",
    "patch_libiconv",
    "patch_ppl",
    "replace_pax",
    "guard_mp_std_bits",
    "profile_list",
]
