'''
Headless world build: generate, mesh every chunk and report statistics.

    python -m cubeworld --seed 7 --radius 1 --heightmap height.png
'''
import argparse
import logging
import time

import numpy

from cubeworld import logutil
from cubeworld.atlas import TextureAtlasMap
from cubeworld.grid import CHUNK_SIZE
from cubeworld.mapgen import ChunkGenerator, TerrainSampler
from cubeworld.mesher import GreedyMesher
from cubeworld.world import ChunkRegistry


def save_heightmap(generator, path):
    """Write the ground level of every column in the window as a greyscale PNG."""
    from PIL import Image

    cx0, cz0 = generator.center
    r = generator.radius
    xs = numpy.arange((cx0 - r) * CHUNK_SIZE, (cx0 + r + 1) * CHUNK_SIZE)
    zs = numpy.arange((cz0 - r) * CHUNK_SIZE, (cz0 + r + 1) * CHUNK_SIZE)
    X, Z = numpy.meshgrid(xs, zs, indexing='ij')
    h = generator.sampler.height(X, Z)
    top = generator.height_chunks * CHUNK_SIZE
    n = numpy.array(numpy.clip(h / top, 0.0, 1.0) * 255, dtype='u1')
    # rows are z so north is up
    im = Image.fromarray(numpy.ascontiguousarray(n.T), 'L')
    im.save(path)
    logutil.log("MAIN", f"height map {im.size[0]}x{im.size[1]} saved to {path}")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="cubeworld", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--seed", type=int, default=None, help="World seed (default config.WORLD_SEED).")
    parser.add_argument("--radius", type=int, default=None, help="Generation radius in chunks.")
    parser.add_argument("--atlas", default=None, help="Atlas descriptor JSON (default bundled spritesheet).")
    parser.add_argument("--no-trees", action="store_true", help="Skip vegetation stamping.")
    parser.add_argument("--subsurface", action="store_true", help="Mix stone pockets into the buried sand.")
    parser.add_argument("--workers", type=int, default=None, help="Threads for the base terrain fill.")
    parser.add_argument("--heightmap", default=None, help="Also save a height map preview PNG here.")
    parser.add_argument("--unit-quads", action="store_true", help="Emit one quad per face, no merging.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    start = time.perf_counter()
    atlas = TextureAtlasMap.load(args.atlas)
    sampler = TerrainSampler(seed=args.seed)
    generator = ChunkGenerator(
        sampler,
        radius=args.radius,
        vegetation=False if args.no_trees else None,
        subsurface_variety=True if args.subsurface else None,
        workers=args.workers,
    )
    registry = ChunkRegistry()
    generator.generate(registry)
    mesher = GreedyMesher(atlas, greedy=False if args.unit_quads else None)
    stats = registry.mesh_all(mesher)
    total_ms = (time.perf_counter() - start) * 1000.0

    gen = generator.stats
    logutil.log("MAIN", f"seed={sampler.seed} chunks={gen['chunks']} trees={gen['trees']} "
                        f"(dropped {gen['dropped']} voxels) fill={gen['fill_ms']:.1f}ms")
    logutil.log("MAIN", f"non-empty={stats['nonempty']} quads={stats['quads']} vertices={stats['vertices']} "
                        f"mesh={stats['ms']:.1f}ms total={total_ms:.1f}ms")
    if args.heightmap:
        save_heightmap(generator, args.heightmap)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
