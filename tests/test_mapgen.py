import logging
import os
import sys

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from cubeworld import mapgen
from cubeworld.blocks import VoxelType
from cubeworld.grid import CHUNK_SIZE, PADDED
from cubeworld.world import ChunkRegistry


def _generate(seed=3, radius=0, **kwargs):
    kwargs.setdefault('vegetation', False)
    generator = mapgen.ChunkGenerator(mapgen.TerrainSampler(seed=seed), radius=radius, **kwargs)
    registry = ChunkRegistry()
    generator.generate(registry, rng=np.random.default_rng(seed))
    return generator, registry


def _world_axes(coord):
    return [c * CHUNK_SIZE - 1 + np.arange(PADDED) for c in coord]


def test_generation_window_covers_radius_and_height():
    generator = mapgen.ChunkGenerator(mapgen.TerrainSampler(seed=1), radius=1, center=(2, -1), height_chunks=4)
    window = generator.generation_window()
    assert len(window) == 3 * 3 * 4
    assert len(set(window)) == len(window)
    assert {c[0] for c in window} == {1, 2, 3}
    assert {c[2] for c in window} == {-2, -1, 0}
    assert {c[1] for c in window} == {0, 1, 2, 3}


def test_every_window_chunk_is_registered_even_when_empty():
    generator, registry = _generate()
    assert registry.coords() == sorted(generator.generation_window())
    # the top chunk sits above the terrain and is entirely empty
    assert registry.get((0, 3, 0)).grid.is_empty()


def test_fresh_terrain_is_empty_exactly_above_ground():
    generator, registry = _generate(seed=21)
    sampler = generator.sampler
    for chunk in registry:
        wx, wy, wz = _world_axes(chunk.coord)
        X, Z = np.meshgrid(wx, wz, indexing='ij')
        ground = np.round(sampler.height(X, Z))
        expect_empty = wy[None, :, None] > ground[:, None, :]
        assert np.array_equal(chunk.grid.blocks == VoxelType.Empty, expect_empty), chunk.coord


def test_surface_voxel_follows_biome_and_buried_is_sand():
    generator, registry = _generate(seed=8)
    sampler = generator.sampler
    checked = 0
    for x, z in ((0, 0), (5, 17), (31, 2), (31, 31), (20, 20)):
        ground = sampler.ground(x, z)
        biome = sampler.biome(x, z)
        if biome < -0.2:
            expect = VoxelType.Dirt
        elif biome > 0.2:
            expect = VoxelType.Stone
        else:
            expect = VoxelType.Grass
        assert registry.get_world_voxel((x, ground, z)).type == expect
        assert registry.get_world_voxel((x, ground - 1, z)).type == VoxelType.Sand
        assert registry.get_world_voxel((x, ground + 1, z)).type == VoxelType.Empty
        checked += 1
    assert checked == 5


def test_surface_type_thresholds():
    types = mapgen.surface_type(np.array([-0.5, -0.2, 0.0, 0.2, 0.7]))
    assert types.tolist() == [VoxelType.Dirt, VoxelType.Grass, VoxelType.Grass, VoxelType.Grass, VoxelType.Stone]


def test_neighbouring_halos_agree_at_the_seams():
    _, registry = _generate(seed=5, radius=1)
    for chunk in registry:
        cx, cy, cz = chunk.coord
        if (cx + 1, cy, cz) in registry:
            right = registry.get((cx + 1, cy, cz)).grid.blocks
            left = chunk.grid.blocks
            assert np.array_equal(left[PADDED - 1], right[1])
            assert np.array_equal(left[PADDED - 2], right[0])
        if (cx, cy + 1, cz) in registry:
            above = registry.get((cx, cy + 1, cz)).grid.blocks
            assert np.array_equal(chunk.grid.blocks[:, PADDED - 1], above[:, 1])


def test_worker_pool_matches_serial_fill():
    _, serial = _generate(seed=13, radius=1)
    _, pooled = _generate(seed=13, radius=1, workers=3)
    for chunk in serial:
        assert pooled.get(chunk.coord).grid == chunk.grid


def test_subsurface_variety_mixes_stone_into_sand():
    generator, registry = _generate(seed=17, subsurface_variety=True)
    sampler = generator.sampler
    buried = []
    for chunk in registry:
        wx, wy, wz = _world_axes(chunk.coord)
        X, Z = np.meshgrid(wx, wz, indexing='ij')
        ground = np.round(sampler.height(X, Z))
        below = wy[None, :, None] < ground[:, None, :]
        buried.append(chunk.grid.blocks[below])
    buried = np.concatenate(buried)
    assert set(np.unique(buried).tolist()) <= {VoxelType.Sand, VoxelType.Stone}
    assert (buried == VoxelType.Stone).any()
    assert (buried == VoxelType.Sand).any()


def test_tree_shapes_put_the_trunk_last():
    assert len(mapgen.TREE_SHAPES) == 2
    for shape in mapgen.TREE_SHAPES:
        trunk = [c for c in shape if c[3] == VoxelType.OakLog]
        leaves = [c for c in shape if c[3] == VoxelType.OakLeaves]
        assert trunk and leaves
        assert all(c[0] == 0 and c[2] == 0 for c in trunk)
        assert min(c[1] for c in trunk) == 1
        assert shape[-len(trunk):] == trunk
        assert max(c[1] for c in leaves) > max(c[1] for c in trunk)


def test_vegetation_stamps_trees_and_keeps_halos_consistent():
    generator, registry = _generate(seed=5, radius=1, vegetation=True)
    assert generator.stats['trees'] > 0
    assert generator.stats['stamped'] > 0
    logs = sum(chunk.grid.count(VoxelType.OakLog) for chunk in registry)
    leaves = sum(chunk.grid.count(VoxelType.OakLeaves) for chunk in registry)
    assert logs > 0 and leaves > 0
    for chunk in registry:
        cx, cy, cz = chunk.coord
        if (cx, cy, cz + 1) in registry:
            front = registry.get((cx, cy, cz + 1)).grid.blocks
            assert np.array_equal(chunk.grid.blocks[:, :, PADDED - 1], front[:, :, 1])
            assert np.array_equal(chunk.grid.blocks[:, :, PADDED - 2], front[:, :, 0])


def test_trunks_start_one_above_ground():
    generator, registry = _generate(seed=5, radius=1, vegetation=True)
    found = 0
    for chunk in registry:
        xs, ys, zs = np.nonzero(chunk.grid.interior == VoxelType.OakLog)
        for x, y, z in zip(xs, ys, zs):
            wx, wy, wz = (o + int(v) for o, v in zip(chunk.origin, (x, y, z)))
            below = registry.get_world_voxel((wx, wy - 1, wz)).type
            if below != VoxelType.OakLog:
                assert wy == generator.sampler.ground(wx, wz) + 1
                found += 1
    assert found > 0


def test_stamping_outside_the_window_is_dropped():
    generator, registry = _generate(seed=2)
    before = {c.coord: c.grid.copy() for c in registry}
    written, dropped = generator.stamp_shape(registry, (500, 60, 500), mapgen.TREE_SHAPES[0])
    assert written == 0
    assert dropped == len(mapgen.TREE_SHAPES[0])
    for chunk in registry:
        assert chunk.grid == before[chunk.coord]


def test_vegetation_is_reproducible_for_a_seed():
    _, a = _generate(seed=30, radius=1, vegetation=True)
    _, b = _generate(seed=30, radius=1, vegetation=True)
    for chunk in a:
        assert b.get(chunk.coord).grid == chunk.grid


def test_short_world_recentres_terrain_and_tree_limit():
    generator, registry = _generate(seed=3, height_chunks=2)
    sampler = generator.sampler
    assert sampler.base_height == CHUNK_SIZE
    assert generator.max_tree_ground == 2 * CHUNK_SIZE - 12
    assert registry.coords() == sorted(generator.generation_window())
    surface = 0
    for chunk in registry:
        wx, wy, wz = _world_axes(chunk.coord)
        X, Z = np.meshgrid(wx, wz, indexing='ij')
        ground = np.round(sampler.height(X, Z))
        expect_empty = wy[None, :, None] > ground[:, None, :]
        assert np.array_equal(chunk.grid.blocks == VoxelType.Empty, expect_empty), chunk.coord
        inner = chunk.grid.interior
        surface += sum(int(np.count_nonzero(inner == v))
                       for v in (VoxelType.Grass, VoxelType.Dirt, VoxelType.Stone))
    X, Z = np.meshgrid(np.arange(CHUNK_SIZE), np.arange(CHUNK_SIZE), indexing='ij')
    ground = sampler.ground(X, Z)
    expected = int(np.count_nonzero((ground >= 0) & (ground < 2 * CHUNK_SIZE)))
    assert expected > 0
    assert surface == expected


def test_short_world_still_plants_trees():
    generator, registry = _generate(seed=5, radius=1, height_chunks=2, vegetation=True)
    assert generator.stats['trees'] > 0
    assert sum(chunk.grid.count(VoxelType.OakLog) for chunk in registry) > 0


def test_pinned_base_height_is_kept_with_a_warning(caplog):
    sampler = mapgen.TerrainSampler(seed=4, base_height=200)
    with caplog.at_level(logging.WARNING, logger="cubeworld.gen"):
        generator = mapgen.ChunkGenerator(sampler, radius=0, height_chunks=2, max_tree_ground=40)
    assert sampler.base_height == 200
    assert generator.max_tree_ground == 40
    assert any("outside" in r.getMessage() for r in caplog.records)
