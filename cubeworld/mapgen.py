#std/external libs
import time
from concurrent.futures import ThreadPoolExecutor

import numpy

#local libs
from cubeworld import config
from cubeworld import logutil
from cubeworld import noise
from cubeworld.blocks import VoxelType
from cubeworld.grid import VoxelGrid, CHUNK_SIZE, PADDED
from cubeworld.world import ChunkNotFound

EMPTY = int(VoxelType.Empty)
GRASS = int(VoxelType.Grass)
DIRT = int(VoxelType.Dirt)
STONE = int(VoxelType.Stone)
SAND = int(VoxelType.Sand)
WOOD = int(VoxelType.OakLog)
LEAVES = int(VoxelType.OakLeaves)


class TerrainSampler(object):
    """ Deterministic terrain fields for world columns.

    `height` and `biome` are pure functions of (x, z) and the constructor
    arguments. Both accept scalars or numpy arrays.
    """
    def __init__(self, seed=None, amplitude=None, base_height=None, frequency=None,
                 octaves=None, lacunarity=None, persistence=None,
                 biome_frequency=None, biome_octaves=None):
        if seed is None:
            seed = getattr(config, 'WORLD_SEED', None)
        if seed is None:
            seed = int(time.time())
        self.seed = seed
        self.amplitude = amplitude if amplitude is not None else getattr(config, 'HEIGHT_AMPLITUDE', 20.0)
        # an unpinned base follows the height of whatever world it fills
        self.base_pinned = base_height is not None
        self.base_height = base_height if base_height is not None else getattr(config, 'BASE_HEIGHT', 64)
        lacunarity = lacunarity if lacunarity is not None else getattr(config, 'HEIGHT_LACUNARITY', 2.0)
        persistence = persistence if persistence is not None else getattr(config, 'HEIGHT_PERSISTENCE', 0.5)
        self.height_noise = noise.FractalNoise(
            seed=seed,
            frequency=frequency if frequency is not None else getattr(config, 'HEIGHT_FREQUENCY', 1.0 / 128),
            octaves=octaves if octaves is not None else getattr(config, 'HEIGHT_OCTAVES', 6),
            lacunarity=lacunarity,
            persistence=persistence,
        )
        self.biome_noise = noise.FractalNoise(
            seed=seed + 101,
            frequency=biome_frequency if biome_frequency is not None else getattr(config, 'BIOME_FREQUENCY', 1.0 / 160),
            octaves=biome_octaves if biome_octaves is not None else getattr(config, 'BIOME_OCTAVES', 4),
            lacunarity=lacunarity,
            persistence=persistence,
        )
        self.subsurface_noise = noise.SimplexNoise(seed=seed + 202)
        self.subsurface_frequency = getattr(config, 'SUBSURFACE_FREQUENCY', 1.0 / 24)

    def fit_to_world(self, world_height):
        """ Centre an unpinned base on a world `world_height` voxels tall.

        A pinned base is left alone; a warning is logged when it lies outside
        the world so its terrain would never be generated.
        """
        if not self.base_pinned:
            self.base_height = world_height // 2
        elif not 0 <= self.base_height < world_height:
            logutil.log("GEN", f"base height {self.base_height} is outside a world "
                               f"{world_height} voxels tall", "WARN")
        return self.base_height

    def height(self, x, z):
        return self.height_noise(x, z) * self.amplitude + self.base_height

    def ground(self, x, z):
        """Integer surface level: the y of the topmost solid voxel."""
        h = numpy.round(self.height(x, z))
        if numpy.ndim(h) == 0:
            return int(h)
        return h.astype(numpy.int64)

    def biome(self, x, z):
        return self.biome_noise(x, z)

    def subsurface(self, x, y, z):
        x, y, z = numpy.broadcast_arrays(numpy.asarray(x, dtype=numpy.float64),
                                         numpy.asarray(y, dtype=numpy.float64),
                                         numpy.asarray(z, dtype=numpy.float64))
        Z = numpy.stack([x.ravel(), y.ravel(), z.ravel()], axis=-1) * self.subsurface_frequency
        return self.subsurface_noise.noise(Z).reshape(x.shape)


def surface_type(biome):
    """ Surface voxel ids for an array of biome values.

    """
    dirt_below = getattr(config, 'BIOME_DIRT_BELOW', -0.2)
    stone_above = getattr(config, 'BIOME_STONE_ABOVE', 0.2)
    biome = numpy.asarray(biome)
    return numpy.where(biome < dirt_below, DIRT,
                       numpy.where(biome > stone_above, STONE, GRASS)).astype(numpy.uint8)


def _build_tree_shapes():
    """ Two oak shapes as (dx, dy, dz, voxel id) offsets from the ground voxel.

    Canopy cells come first so the trunk overwrites them where they overlap.
    """
    shapes = []
    def build(height, radius):
        cells = []
        top = height
        for dx in range(-radius, radius + 1):
            for dz in range(-radius, radius + 1):
                for dy in range(-1, 2):
                    if abs(dx) + abs(dz) + abs(dy) > radius + 1:
                        continue
                    cells.append((dx, top + dy, dz, LEAVES))
        # plus shaped cap
        for dx, dz in ((0, 0), (1, 0), (-1, 0), (0, 1), (0, -1)):
            cells.append((dx, top + 2, dz, LEAVES))
        cells.extend((0, dy, 0, WOOD) for dy in range(1, height + 1))
        return cells
    shapes.append(build(4, 2))
    shapes.append(build(5, 2))
    return shapes


TREE_SHAPES = _build_tree_shapes()


class ChunkGenerator(object):
    """ Fills the chunks of the generation window and plants trees.

    The window covers chunk columns within `radius` of `center` (inclusive)
    and chunk rows 0..height_chunks-1. Every padded cell, halo included, is
    computed from the sampler so neighbouring chunks agree along the seams.
    """
    def __init__(self, sampler=None, radius=None, center=None, height_chunks=None,
                 vegetation=None, subsurface_variety=None, workers=None,
                 tree_spacing=None, max_tree_ground=None):
        self.height_chunks = height_chunks if height_chunks is not None else getattr(config, 'WORLD_HEIGHT_CHUNKS', 4)
        top = self.height_chunks * CHUNK_SIZE
        self.sampler = sampler if sampler is not None else TerrainSampler()
        self.sampler.fit_to_world(top)
        self.radius = radius if radius is not None else getattr(config, 'GENERATION_RADIUS', 2)
        self.center = tuple(center if center is not None else getattr(config, 'GENERATION_CENTER', (0, 0)))
        self.vegetation = vegetation if vegetation is not None else getattr(config, 'VEGETATION', True)
        self.subsurface_variety = (subsurface_variety if subsurface_variety is not None
                                   else getattr(config, 'SUBSURFACE_VARIETY', False))
        self.workers = workers if workers is not None else getattr(config, 'GENERATION_WORKERS', 1)
        self.tree_spacing = tree_spacing if tree_spacing is not None else getattr(config, 'TREE_SPACING', 6.0)
        if max_tree_ground is None:
            max_tree_ground = top - getattr(config, 'TREE_HEADROOM', 12)
        self.max_tree_ground = max_tree_ground
        self._columns = {}
        self.stats = {}

    def generation_window(self):
        cx0, cz0 = self.center
        r = self.radius
        return [(cx, cy, cz)
                for cx in range(cx0 - r, cx0 + r + 1)
                for cz in range(cz0 - r, cz0 + r + 1)
                for cy in range(self.height_chunks)]

    def column_fields(self, cx, cz):
        """ Ground level and surface voxel per padded (x, z) column of a chunk column.

        Cached so the vertical chunks of a column share one sampling pass.
        """
        key = (cx, cz)
        fields = self._columns.get(key)
        if fields is None:
            wx = cx * CHUNK_SIZE - 1 + numpy.arange(PADDED)
            wz = cz * CHUNK_SIZE - 1 + numpy.arange(PADDED)
            X, Z = numpy.meshgrid(wx, wz, indexing='ij')
            ground = self.sampler.ground(X, Z)
            surface = surface_type(self.sampler.biome(X, Z))
            fields = self._columns[key] = (ground, surface)
        return fields

    def fill_chunk(self, coord):
        cx, cy, cz = coord
        ground, surface = self.column_fields(cx, cz)
        wy = (cy * CHUNK_SIZE - 1 + numpy.arange(PADDED))[numpy.newaxis, :, numpy.newaxis]
        ground = ground[:, numpy.newaxis, :]
        if self.subsurface_variety:
            wx = (cx * CHUNK_SIZE - 1 + numpy.arange(PADDED))[:, numpy.newaxis, numpy.newaxis]
            wz = (cz * CHUNK_SIZE - 1 + numpy.arange(PADDED))[numpy.newaxis, numpy.newaxis, :]
            stone_above = getattr(config, 'SUBSURFACE_STONE_ABOVE', 0.25)
            buried = numpy.where(self.sampler.subsurface(wx, wy, wz) > stone_above, STONE, SAND)
        else:
            buried = SAND
        blocks = numpy.where(wy == ground, surface[:, numpy.newaxis, :],
                             numpy.where(wy < ground, buried, EMPTY))
        return VoxelGrid.from_blocks(blocks.astype(numpy.uint8))

    def generate(self, registry, rng=None):
        """ Fill every chunk of the window into `registry`, then stamp trees.

        `rng` is the numpy Generator used for tree placement and shape choice;
        it defaults to one seeded from the sampler's seed.
        """
        t0 = time.perf_counter()
        window = self.generation_window()
        for cx, cz in sorted(set((c[0], c[2]) for c in window)):
            self.column_fields(cx, cz)
        if self.workers and self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='gen') as pool:
                grids = list(pool.map(self.fill_chunk, window))
        else:
            grids = [self.fill_chunk(coord) for coord in window]
        for coord, grid in zip(window, grids):
            registry.register(coord, grid)
        fill_ms = (time.perf_counter() - t0) * 1000.0
        logutil.log("GEN", f"filled {len(window)} chunks radius={self.radius} center={self.center} in {fill_ms:.1f}ms")
        self.stats = {'chunks': len(window), 'fill_ms': fill_ms, 'trees': 0, 'stamped': 0, 'dropped': 0}
        if self.vegetation:
            if rng is None:
                rng = numpy.random.default_rng(self.sampler.seed)
            self.stamp_trees(registry, rng)
        return registry

    def tree_sites(self, rng):
        """World (x, z) cells for tree trunks over the whole window."""
        cx0, cz0 = self.center
        x0 = (cx0 - self.radius) * CHUNK_SIZE
        z0 = (cz0 - self.radius) * CHUNK_SIZE
        span = (2 * self.radius + 1) * CHUNK_SIZE
        attempts = getattr(config, 'TREE_SAMPLER_ATTEMPTS', 30)
        points = noise.poisson_disk(span, span, self.tree_spacing, rng, max_attempts=attempts)
        return [(x0 + int(px), z0 + int(pz)) for px, pz in points]

    def stamp_trees(self, registry, rng):
        t0 = time.perf_counter()
        sites = self.tree_sites(rng)
        trees = stamped = dropped = 0
        for wx, wz in sites:
            ground = self.sampler.ground(wx, wz)
            if ground > self.max_tree_ground:
                continue
            shape = TREE_SHAPES[int(rng.integers(len(TREE_SHAPES)))]
            placed, lost = self.stamp_shape(registry, (wx, ground, wz), shape)
            trees += 1
            stamped += placed
            dropped += lost
        elapsed = (time.perf_counter() - t0) * 1000.0
        logutil.log("TREES", f"planted {trees} trees ({stamped} voxels, {dropped} dropped) in {elapsed:.1f}ms")
        self.stats.update(trees=trees, stamped=stamped, dropped=dropped)

    def stamp_shape(self, registry, base, shape):
        """ Write `shape` with its offsets relative to the ground voxel `base`.

        Leaves only replace empty cells. Voxels that land in chunks outside the
        registry are dropped. Returns (written, dropped) counts.
        """
        bx, by, bz = base
        detail = getattr(config, 'LOG_STAMP_DETAIL', False)
        written = 0
        dropped = 0
        for dx, dy, dz, voxel in shape:
            pos = (bx + dx, by + dy, bz + dz)
            try:
                if voxel == LEAVES and registry.get_world_voxel(pos).id != EMPTY:
                    continue
                registry.set_world_voxel(pos, voxel)
                written += 1
            except ChunkNotFound as e:
                dropped += 1
                if detail:
                    logutil.log("TREES", f"dropped voxel {pos}: {e}", "DEBUG")
        if dropped and not detail:
            logutil.log("TREES", f"tree at {base}: {dropped} voxels outside generated chunks", "DEBUG")
        return written, dropped
