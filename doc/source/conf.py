import pathlib
import sys

from sphinx_pyproject import SphinxConfig

root_dir = pathlib.Path(__file__).parents[2]
# autodoc需要能够导入gccbld
sys.path.insert(0, str(root_dir))
config = SphinxConfig(root_dir / "pyproject.toml", globalns=globals())

project = name  # type:ignore
release = version  # type:ignore
for key in config:
    globals()[key] = config[key]
