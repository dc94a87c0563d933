'''
grid.py -- padded voxel storage for a single chunk
'''
import numpy

from cubeworld import config
from cubeworld.blocks import Voxel, VoxelType

CHUNK_SIZE = config.CHUNK_SIZE
PADDED = config.CHUNK_PADDED
GRID_VOLUME = PADDED * PADDED * PADDED
# Flat index strides for x, y and z (x varies fastest).
STRIDE = (1, PADDED, PADDED * PADDED)
HALO_MAX = PADDED - 1


def linearize(x, y, z):
    """ Flat index of padded cell (x, y, z). Accepts ints or numpy index arrays.

    """
    return x * STRIDE[0] + y * STRIDE[1] + z * STRIDE[2]


def delinearize(i):
    """ Padded cell (x, y, z) of flat index `i`; inverse of `linearize`.

    """
    return i % PADDED, (i // PADDED) % PADDED, i // (PADDED * PADDED)


def in_bounds(x, y, z):
    """True when (x, y, z) addresses a padded cell, halo included."""
    return 0 <= x < PADDED and 0 <= y < PADDED and 0 <= z < PADDED


def _voxel_id(value):
    if isinstance(value, Voxel):
        return value.id
    return int(VoxelType(int(value)))


class VoxelGrid(object):
    '''
    Voxel ids for one chunk plus a one voxel halo on every side.

    `data` is the flat storage (see `linearize`); `blocks` is an [x, y, z] view
    onto the same memory so numpy code can slice it directly. Padded cell
    (x+1, y+1, z+1) holds local voxel (x, y, z).
    '''
    def __init__(self, data=None):
        if data is None:
            data = numpy.zeros(GRID_VOLUME, dtype=numpy.uint8)
        else:
            data = numpy.array(data, dtype=numpy.uint8).ravel()
            if data.shape != (GRID_VOLUME, ):
                raise ValueError(f"expected {GRID_VOLUME} voxels, got {data.size}")
        self.data = data
        self.blocks = data.reshape(PADDED, PADDED, PADDED).transpose(2, 1, 0)

    @classmethod
    def from_blocks(cls, blocks):
        """Build a grid from an [x, y, z] array of voxel ids with shape (34, 34, 34)."""
        blocks = numpy.asarray(blocks)
        if blocks.shape != (PADDED, PADDED, PADDED):
            raise ValueError(f"expected shape {(PADDED, ) * 3}, got {blocks.shape}")
        return cls(numpy.ascontiguousarray(blocks.transpose(2, 1, 0)).ravel())

    @property
    def interior(self):
        """View of the chunk's own voxels, halo excluded."""
        return self.blocks[1:-1, 1:-1, 1:-1]

    def _check(self, x, y, z):
        if not in_bounds(x, y, z):
            raise IndexError(f"padded cell {(x, y, z)} outside 0..{HALO_MAX}")

    def get(self, x, y, z):
        self._check(x, y, z)
        return Voxel(int(self.data[linearize(x, y, z)]))

    def set(self, x, y, z, voxel):
        self._check(x, y, z)
        self.data[linearize(x, y, z)] = _voxel_id(voxel)

    def get_local(self, x, y, z):
        return self.get(x + 1, y + 1, z + 1)

    def set_local(self, x, y, z, voxel):
        self.set(x + 1, y + 1, z + 1, voxel)

    def fill(self, voxel):
        self.data[:] = _voxel_id(voxel)

    def copy(self):
        return VoxelGrid(self.data.copy())

    def count(self, voxel):
        return int(numpy.count_nonzero(self.data == _voxel_id(voxel)))

    def is_empty(self):
        return not self.data.any()

    def __eq__(self, other):
        if not isinstance(other, VoxelGrid):
            return NotImplemented
        return numpy.array_equal(self.data, other.data)

    __hash__ = None
