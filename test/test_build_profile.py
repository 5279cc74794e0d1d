import pathlib

import py
import pytest

from gccbld.build_profile import (
    build_context,
    build_style,
    cygwin_platform,
    guard_mp_std_bits,
    package_kind,
    patch_libiconv,
    patch_ppl,
    profile_list,
    replace_pax,
)

type Path = py.path.LocalPath


def make_context(tmpdir: Path, dir_name: str, platform: str = "linux-centos-6.9-x86_64") -> build_context:
    root = pathlib.Path(tmpdir)
    return build_context(root / "rtf", root / "bld", root / "src" / dir_name, platform)


@pytest.mark.parametrize(
    "dir_name, kind",
    [
        ("autoconf-2.69", package_kind.autoconf),
        ("binutils-2.30", package_kind.binutils),
        ("boost_1_66_0", package_kind.boost),
        ("cloog-0.18.4", package_kind.cloog),
        ("gcc-6.4.0", package_kind.gcc),
        ("glibc-2.15", package_kind.glibc),
        ("gmp-6.1.2", package_kind.gmp),
        ("libiconv-1.15", package_kind.libiconv),
        ("m4-1.4.18", package_kind.m4),
        ("mpc-1.1.0", package_kind.mpc),
        ("mpfr-4.0.1", package_kind.mpfr),
        ("ppl-1.2", package_kind.ppl),
    ],
)
def test_classify(dir_name: str, kind: package_kind) -> None:
    """测试每个目录名恰好匹配一个包种类"""

    assert package_kind.classify(dir_name) == kind
    assert [item for item in package_kind if dir_name.startswith(item)] == [kind]


def test_unrecognized_package(tmpdir: Path) -> None:
    """测试未知的包抛出异常"""

    with pytest.raises(RuntimeError, match="unrecognized package: zlib-1.2.11"):
        profile_list.get_profile("zlib-1.2.11", make_context(tmpdir, "zlib-1.2.11"))


def test_profile(tmpdir: Path) -> None:
    """测试构建配置中的关键选项"""

    context = make_context(tmpdir, "gcc-6.4.0")
    rtf = context.rtf_dir
    gcc = profile_list.get_profile("gcc-6.4.0", context)
    assert gcc.style == build_style.configure
    assert f"--prefix={rtf}" in gcc.configure_args
    assert "--enable-languages=c,c++" in gcc.configure_args

    boost = profile_list.get_profile("boost_1_66_0", context)
    assert boost.style == build_style.bootstrap
    assert boost.configure_args == [f"--prefix={rtf}", "--with-python=python3"]

    binutils = profile_list.get_profile("binutils-2.30", context)
    assert "--disable-werror" in binutils.configure_args
    assert f"CXX={rtf / 'bin' / 'g++'}" in binutils.configure_args


def test_static_option(tmpdir: Path) -> None:
    """测试cygwin下gmp、mpc、ppl只构建静态库"""

    for dir_name in ("gmp-6.1.2", "mpc-1.1.0", "ppl-1.2"):
        args = profile_list.get_profile(dir_name, make_context(tmpdir, dir_name, cygwin_platform)).configure_args
        assert args[-2:] == ["--enable-static", "--disable-shared"]
        args = profile_list.get_profile(dir_name, make_context(tmpdir, dir_name)).configure_args
        assert "--enable-static" not in args


def test_cloog_gmp_build_dir(tmpdir: Path) -> None:
    """测试cloog使用版本最新的gmp构建目录"""

    context = make_context(tmpdir, "cloog-0.18.4")
    assert f"--with-gmp-builddir={context.bld_dir / 'gmp-*'}" in profile_list.get_profile("cloog-0.18.4", context).configure_args

    for name in ("gmp-5.1.3", "gmp-6.1.2", "gmp-6.0.0"):
        (context.bld_dir / name).mkdir(parents=True)
    assert f"--with-gmp-builddir={context.bld_dir / 'gmp-6.1.2'}" in profile_list.get_profile("cloog-0.18.4", context).configure_args


def test_replace_pax() -> None:
    """测试替换pax -r"""

    assert replace_pax("  am__untar='pax -r'\n") == "  am__untar='tar -xf'  #am__untar='pax -r'\n"
    assert replace_pax("am__untar='tar -xf'\n") == "am__untar='tar -xf'\n"


def test_guard_mp_std_bits() -> None:
    """测试为namespace std块添加gmp版本检查"""

    text = "#include <gmpxx.h>\nnamespace std {\n  int x;\n} // namespace std\n"
    lines = guard_mp_std_bits(text).splitlines()
    index = lines.index("namespace std {")
    assert lines[index - 2] == "#define tininess_before tinyness_before"
    assert lines[index - 1].startswith("#if __GNU_MP_VERSION < 5")
    assert lines[-2] == "} // namespace std"
    assert lines[-1].startswith("#endif  // #if __GNU_MP_VERSION < 5")


def test_patch_ppl_once(tmpdir: Path) -> None:
    """测试ppl的修改只进行一次"""

    context = make_context(tmpdir, "ppl-1.2")
    (context.source_dir / "src").mkdir(parents=True)
    configure = context.source_dir / "configure"
    header = context.source_dir / "src" / "mp_std_bits.defs.hh"
    configure.write_text("am__untar='pax -r'\n")
    header.write_text("namespace std {\n} // namespace std\n")

    patch_ppl(context)
    assert (context.source_dir / "configure.orig").read_text() == "am__untar='pax -r'\n"
    assert "am__untar='tar -xf'" in configure.read_text()
    assert header.with_name("mp_std_bits.defs.hh.orig").exists()
    patched_configure = configure.read_text()
    patched_header = header.read_text()

    patch_ppl(context)
    assert configure.read_text() == patched_configure
    assert header.read_text() == patched_header


def test_patch_ppl_already_guarded(tmpdir: Path) -> None:
    """测试已包含gmp版本检查的头文件不修改"""

    context = make_context(tmpdir, "ppl-1.2")
    (context.source_dir / "src").mkdir(parents=True)
    (context.source_dir / "configure").write_text("\n")
    header = context.source_dir / "src" / "mp_std_bits.defs.hh"
    header.write_text("#if __GNU_MP_VERSION < 5\nnamespace std {\n} // namespace std\n#endif\n")
    patch_ppl(context)
    assert not header.with_name("mp_std_bits.defs.hh.orig").exists()


def test_patch_libiconv(tmpdir: Path) -> None:
    """测试libiconv的修改只在macOS上进行且只进行一次"""

    context = make_context(tmpdir, "libiconv-1.15")
    include = context.source_dir / "include"
    include.mkdir(parents=True)
    for name in ("iconv.h.build.in", "iconv.h.in"):
        (include / name).write_text("/* header */\n")

    patch_libiconv(context)
    assert (include / "iconv.h.in").read_text() == "/* header */\n"

    context.platform = "macos-darwin-17.5.0-x86_64"
    patch_libiconv(context)
    patch_libiconv(context)
    for name in ("iconv.h.build.in", "iconv.h.in"):
        text = (include / name).read_text()
        assert text.count("#define _LIBICONV_H_PATCH") == 1
        assert "#define _iconv_open  iconv_open" in text


class test_patch_libiconv_missing_template:
    """测试macOS上只修改存在的iconv头文件模板"""

    platform: str

    @classmethod
    def setup_class(cls) -> None:
        cls.platform = "macos-darwin-17.5.0-x86_64"

    def test_missing_build_template(self, tmpdir: Path) -> None:
        """只有iconv.h.in时不创建iconv.h.build.in"""

        context = make_context(tmpdir, "libiconv-1.15", self.platform)
        include = context.source_dir / "include"
        include.mkdir(parents=True)
        (include / "iconv.h.in").write_text("/* header */\n")

        patch_libiconv(context)
        assert not (include / "iconv.h.build.in").exists()
        assert (include / "iconv.h.in").read_text().count("#define _LIBICONV_H_PATCH") == 1

    def test_no_include_dir(self, tmpdir: Path) -> None:
        """没有include目录时什么也不做"""

        context = make_context(tmpdir, "libiconv-1.15", self.platform)
        patch_libiconv(context)
        assert not (context.source_dir / "include").exists()
