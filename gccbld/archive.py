import re
import typing
from pathlib import PurePosixPath
from urllib.parse import urlparse

import packaging.version as version

from . import common

# 包的源代码归档列表，顺序即为构建顺序
default_archive_list: typing.Final[list[str]] = [
    "http://ftp.gnu.org/pub/gnu/libiconv/libiconv-1.15.tar.gz",
    "https://ftp.gnu.org/gnu/m4/m4-1.4.18.tar.gz",
    "https://ftp.gnu.org/gnu/autoconf/autoconf-2.69.tar.gz",
    "https://gmplib.org/download/gmp/gmp-6.1.2.tar.bz2",
    "http://www.mpfr.org/mpfr-current/mpfr-4.0.1.tar.gz",
    "https://ftp.gnu.org/gnu/mpc/mpc-1.1.0.tar.gz",
    "http://bugseng.com/external/ppl/download/ftp/releases/1.2/ppl-1.2.tar.bz2",
    "http://www.bastoul.net/cloog/pages/download/cloog-0.18.4.tar.gz",
    "https://ftp.gnu.org/gnu/gcc/gcc-6.4.0/gcc-6.4.0.tar.gz",
    "https://ftp.gnu.org/gnu/binutils/binutils-2.30.tar.bz2",
    "https://dl.bintray.com/boostorg/release/1.66.0/source/boost_1_66_0.tar.bz2",
    # glibc构建出的共享库与CentOS已安装的共享库ABI不兼容(ELF file OS ABI invalid)，暂不构建
    # "http://ftp.gnu.org/gnu/glibc/glibc-2.15.tar.bz2",
]

_name_version_pattern = re.compile(r"^(?P<name>.+?)[-_](?P<version>\d[\w.]*)$")


def parse_name_version(dir_name: str) -> tuple[str, version.Version | None]:
    """从目录名中解析包名和版本号，boost_1_66_0形式的版本号会转化为1.66.0

    Args:
        dir_name (str): 目录名，如gmp-6.1.2

    Returns:
        tuple[str, version.Version | None]: (包名, 版本号)，无法解析版本号时版本号为None
    """

    match = _name_version_pattern.match(dir_name)
    if not match:
        return dir_name, None
    try:
        return match["name"], version.Version(match["version"].replace("_", "."))
    except version.InvalidVersion:
        return match["name"], None


class archive_spec:
    """一个源代码归档，所有字段均由url推导得到

    Attributes:
        url      : 归档的下载地址
        file_name: 归档文件名，即url的最后一级
        extension: 文件名最后一个.之后的部分，.tar.gz的扩展名为gz
        dir_name : 解压后得到的目录名，即去除.tar.<ext>后缀的文件名
    """

    url: str
    file_name: str
    extension: str
    dir_name: str

    def __init__(self, url: str) -> None:
        self.url = url
        self.file_name = PurePosixPath(urlparse(url).path).name if url else ""
        self.extension = self.file_name.rsplit(".", 1)[-1] if "." in self.file_name else ""
        self.dir_name = self._strip_tar_suffix(self.file_name, self.extension)

    @staticmethod
    def _strip_tar_suffix(file_name: str, extension: str) -> str:
        """去除最短的.*tar.<ext>后缀，没有该后缀时保持不变

        Args:
            file_name (str): 文件名
            extension (str): 扩展名

        Returns:
            str: 目录名
        """

        tar_suffix = f"tar.{extension}"
        if extension and file_name.endswith(tar_suffix):
            head = file_name[: -len(tar_suffix)]
            if (dot := head.rfind(".")) != -1:
                return file_name[:dot]
        return file_name

    @property
    def name(self) -> str:
        """不带版本号的包名，如gmp、boost"""

        return parse_name_version(self.dir_name)[0]

    @property
    def version(self) -> version.Version | None:
        """包版本号，boost_1_66_0形式的版本号会转化为1.66.0

        Returns:
            version.Version | None: 版本号，无法解析时返回None
        """

        return parse_name_version(self.dir_name)[1]

    def banner(self, step: str) -> str:
        """生成阶段开始时显示的横幅

        Args:
            step (str): 阶段名称，如DOWNLOAD

        Returns:
            str: 横幅信息
        """

        return common.gccbld_info(
            "\n".join(
                (
                    "",
                    common.separator_line,
                    f"# Step   : {step}",
                    f"# Archive: {self.url}",
                    f"# File   : {self.file_name}",
                    f"# Ext    : {self.extension}",
                    f"# Dir    : {self.dir_name}",
                    common.separator_line,
                )
            ),
            common.message_type.none,
        )

    def __repr__(self) -> str:
        return f"archive_spec({self.url!r})"


def parse_archive_list(url_list: typing.Iterable[str]) -> list[archive_spec]:
    """将url列表转化为归档列表，保持原有顺序

    Args:
        url_list (typing.Iterable[str]): url列表

    Returns:
        list[archive_spec]: 归档列表
    """

    return [archive_spec(url) for url in url_list]


__all__ = ["default_archive_list", "parse_name_version", "archive_spec", "parse_archive_list"]
