'''
world.py -- the chunk registry: owned state for every generated chunk
'''
import itertools
import math
import time

from cubeworld import logutil
from cubeworld.grid import CHUNK_SIZE, HALO_MAX, _voxel_id
from cubeworld.mesher import TriMeshCollider

NEIGHBOR_OFFSETS = [d for d in itertools.product((-1, 0, 1), repeat=3) if d != (0, 0, 0)]


class ChunkNotFound(KeyError):
    """Raised when a lookup or write targets a chunk the registry does not hold."""


def world_cell(point):
    """Integer cell containing a world-space point."""
    return tuple(int(math.floor(c)) for c in point)


def chunk_coord(cell):
    """Chunk coordinate owning the integer world cell `cell`."""
    return tuple(int(c) // CHUNK_SIZE for c in cell)


class Chunk(object):
    '''
    One chunk's state: its padded grid, current mesh and collider, and the
    world translation of padded cell (0, 0, 0). `revision` counts published
    mesh updates; `dirty` marks voxel writes not yet remeshed.
    '''
    def __init__(self, coord, grid):
        self.coord = tuple(coord)
        self.grid = grid
        self.mesh = None
        self.collider = None
        self.revision = 0
        self.dirty = True

    @property
    def origin(self):
        return tuple(c * CHUNK_SIZE for c in self.coord)

    @property
    def translation(self):
        return tuple(c * CHUNK_SIZE - 1 for c in self.coord)

    def local_cell(self, point):
        """Padded cell holding world point `point`; may lie outside the grid."""
        return tuple(int(math.floor(p - t)) for p, t in zip(point, self.translation))

    def covers(self, point):
        return all(0 <= c <= HALO_MAX for c in self.local_cell(point))

    def __repr__(self):
        return f"Chunk({self.coord}, rev={self.revision})"


class ChunkUpdate(object):
    """A freshly built mesh and collider for one chunk, published together."""
    def __init__(self, coord, mesh, collider, revision, translation):
        self.coord = coord
        self.mesh = mesh
        self.collider = collider
        self.revision = revision
        self.translation = translation

    def __repr__(self):
        return f"ChunkUpdate({self.coord}, rev={self.revision}, verts={self.mesh.generated})"


def mesh_chunk(chunk, mesher):
    """ Rebuild a chunk's mesh and collider.

    Both are built before either is assigned. An empty mesh clears both to
    None. Returns the new mesh (possibly empty).
    """
    mesh = mesher.mesh(chunk.grid)
    if mesh.generated:
        collider = TriMeshCollider.from_mesh(mesh)
        chunk.mesh, chunk.collider = mesh, collider
    else:
        chunk.mesh, chunk.collider = None, None
    chunk.dirty = False
    return mesh


class ChunkRegistry(object):
    '''
    Sparse map from chunk coordinate to Chunk. Generation and edits are
    handed the registry explicitly; it is not safe for concurrent writers.
    '''
    def __init__(self):
        self._chunks = {}

    def register(self, coord, grid):
        coord = tuple(coord)
        chunk = Chunk(coord, grid)
        self._chunks[coord] = chunk
        return chunk

    def get(self, coord):
        try:
            return self._chunks[tuple(coord)]
        except KeyError:
            raise ChunkNotFound(tuple(coord)) from None

    def __contains__(self, coord):
        return tuple(coord) in self._chunks

    def __len__(self):
        return len(self._chunks)

    def __iter__(self):
        for coord in sorted(self._chunks):
            yield self._chunks[coord]

    def coords(self):
        return sorted(self._chunks)

    def owner_of(self, point):
        """The chunk whose interior holds world point `point`."""
        return self.get(chunk_coord(world_cell(point)))

    def chunks_covering(self, point):
        """ Every registered chunk whose padded grid holds `point`: the owner plus
        any neighbour whose halo mirrors that cell. Sorted by coordinate.

        """
        owner = chunk_coord(world_cell(point))
        found = []
        for d in sorted(NEIGHBOR_OFFSETS + [(0, 0, 0)]):
            coord = tuple(o + e for o, e in zip(owner, d))
            chunk = self._chunks.get(coord)
            if chunk is not None and chunk.covers(point):
                found.append(chunk)
        return found

    def get_world_voxel(self, point):
        chunk = self.owner_of(point)
        return chunk.grid.get(*chunk.local_cell(point))

    def set_world_voxel(self, point, voxel):
        """ Write a voxel into its owner chunk and every halo copy of that cell.

        Raises ChunkNotFound, writing nothing, when the owner is not registered.
        Returns the coordinates of the chunks written.
        """
        self.owner_of(point)
        value = _voxel_id(voxel)
        written = []
        for chunk in self.chunks_covering(point):
            chunk.grid.set(*chunk.local_cell(point), value)
            chunk.dirty = True
            written.append(chunk.coord)
        return written

    def refresh_halo(self, coord):
        """ Copy the halo of chunk `coord` from its neighbours' boundary voxels.

        Missing neighbours leave their part of the halo untouched. Returns the
        number of neighbours copied.
        """
        chunk = self.get(coord)
        n = CHUNK_SIZE
        dst_slices = {-1: slice(0, 1), 0: slice(1, n + 1), 1: slice(n + 1, n + 2)}
        src_slices = {-1: slice(n, n + 1), 0: slice(1, n + 1), 1: slice(1, 2)}
        copied = 0
        for d in NEIGHBOR_OFFSETS:
            neighbor = self._chunks.get(tuple(c + e for c, e in zip(chunk.coord, d)))
            if neighbor is None:
                continue
            dst = tuple(dst_slices[e] for e in d)
            src = tuple(src_slices[e] for e in d)
            chunk.grid.blocks[dst] = neighbor.grid.blocks[src]
            copied += 1
        chunk.dirty = True
        return copied

    def mesh_all(self, mesher, only_dirty=False):
        """ Mesh every chunk (or only those with unmeshed writes).

        Returns a stats dict: chunks meshed, non-empty chunks, quads, vertices, ms.
        """
        start = time.perf_counter()
        stats = {'chunks': 0, 'nonempty': 0, 'quads': 0, 'vertices': 0}
        for chunk in self:
            if only_dirty and not chunk.dirty:
                continue
            mesh = mesh_chunk(chunk, mesher)
            stats['chunks'] += 1
            stats['quads'] += mesh.quad_count
            stats['vertices'] += mesh.generated
            if mesh.generated:
                stats['nonempty'] += 1
        stats['ms'] = (time.perf_counter() - start) * 1000.0
        logutil.log("WORLD", f"meshed {stats['chunks']} chunks ({stats['nonempty']} non-empty) "
                             f"{stats['quads']} quads in {stats['ms']:.1f}ms")
        return stats

    def snapshot(self, coord):
        """Copy of a chunk's grid, for comparisons in tools and tests."""
        return self.get(coord).grid.copy()
