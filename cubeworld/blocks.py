import enum

import numpy

from cubeworld import config


class VoxelType(enum.IntEnum):
    Empty = 0
    Grass = 1
    Dirt = 2
    Stone = 3
    Sand = 4
    OakLog = 5
    OakLeaves = 6
    Cobblestone = 7


white = tuple(config.DEFAULT_TINT)
green = tuple(config.GRASS_TINT)

# Face groups used for textures and tints.
FACE_TOP = 0
FACE_BOTTOM = 1
FACE_SIDE = 2


class Block(object):
    voxel_type = None
    # Atlas frame names for top, bottom and side faces; missing entries repeat the last one.
    textures = ('debug.png', )
    # RGBA tint for top, bottom and side faces, same padding rule as textures.
    colors = (white, )
    solid = True
    # Occlusion flags: opaque blocks hide their neighbours' faces; translucent blocks may only hide same-type faces.
    occludes = True
    occludes_same = False

class Air(Block):
    voxel_type = VoxelType.Empty
    solid = False
    occludes = False

class DirtWithGrass(Block):
    voxel_type = VoxelType.Grass
    textures = ('grass_block_top.png', 'dirt.png', 'grass_block_side.png')
    colors = (green, white, white)

class Dirt(Block):
    voxel_type = VoxelType.Dirt
    textures = ('dirt.png', )

class Stone(Block):
    voxel_type = VoxelType.Stone
    textures = ('stone.png', )

class Sand(Block):
    voxel_type = VoxelType.Sand
    textures = ('sand.png', )

class OakLog(Block):
    voxel_type = VoxelType.OakLog
    textures = ('oak_log_top.png', 'oak_log_top.png', 'oak_log.png')

class OakLeaves(Block):
    voxel_type = VoxelType.OakLeaves
    textures = ('oak_leaves.png', )
    colors = (green, )
    occludes = False
    occludes_same = True

class CobbleStone(Block):
    voxel_type = VoxelType.Cobblestone
    textures = ('cobblestone.png', )


def _face_groups(values):
    """Expand a (top, bottom, side) tuple, repeating the last entry for missing faces."""
    values = tuple(values)
    while len(values) < 3:
        values = values + values[-1:]
    return values[:3]


# Ordered by VoxelType value so the lookup tables below can be indexed by voxel id.
BLOCKS = [
    Air,
    DirtWithGrass,
    Dirt,
    Stone,
    Sand,
    OakLog,
    OakLeaves,
    CobbleStone,
]
for _i, _block in enumerate(BLOCKS):
    assert _block.voxel_type == _i, f"{_block.__name__} registered out of order"

BLOCK_SOLID = numpy.array([x.solid for x in BLOCKS], dtype=numpy.uint8)
BLOCK_OCCLUDES = numpy.array([x.solid and x.occludes for x in BLOCKS], dtype=numpy.uint8)
BLOCK_OCCLUDES_SAME = numpy.array([x.occludes_same for x in BLOCKS], dtype=numpy.uint8)
BLOCK_TEXTURES = [_face_groups(x.textures) for x in BLOCKS]
# (block, face group, rgba)
BLOCK_COLORS = numpy.array([_face_groups(x.colors) for x in BLOCKS], dtype=numpy.float32)


def face_group(normal_y):
    if normal_y > 0:
        return FACE_TOP
    if normal_y < 0:
        return FACE_BOTTOM
    return FACE_SIDE


def texture_name(voxel_type, normal):
    """Atlas frame name for the face of `voxel_type` pointing along `normal`."""
    return BLOCK_TEXTURES[int(voxel_type)][face_group(normal[1])]


def face_color(voxel_type, normal):
    return BLOCK_COLORS[int(voxel_type), face_group(normal[1])]


def texture_frame_names():
    """Every atlas frame the block table can ask for."""
    names = set()
    for textures in BLOCK_TEXTURES:
        names.update(textures)
    return names


class Voxel(object):
    """A single voxel value. Grids store bare ids; this wraps one for callers."""
    __slots__ = ('type', )

    def __init__(self, voxel_type=VoxelType.Empty):
        self.type = VoxelType(voxel_type)

    def __eq__(self, other):
        if not isinstance(other, Voxel):
            return NotImplemented
        return self.type == other.type

    def __hash__(self):
        return hash(self.type)

    def __repr__(self):
        return f"Voxel({self.type.name})"

    @property
    def id(self):
        return int(self.type)

    @property
    def is_empty(self):
        return self.type == VoxelType.Empty

    @property
    def is_opaque(self):
        return bool(BLOCK_OCCLUDES[self.type])

    @property
    def is_translucent(self):
        return bool(BLOCK_SOLID[self.type]) and not self.is_opaque


EMPTY = Voxel(VoxelType.Empty)
