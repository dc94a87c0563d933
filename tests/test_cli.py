import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from PIL import Image

from cubeworld.__main__ import main


def test_cli_builds_a_small_world_and_height_map(tmp_path):
    out = tmp_path / "height.png"
    assert main(["--seed", "4", "--radius", "0", "--no-trees", "--heightmap", str(out)]) == 0
    im = Image.open(str(out))
    assert im.size == (32, 32)
    assert im.mode == "L"


def test_cli_unit_quads_with_trees():
    assert main(["--seed", "4", "--radius", "1", "--unit-quads", "--workers", "2"]) == 0
