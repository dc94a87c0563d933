'''
mesher.py -- turns a padded VoxelGrid into triangle buffers

Only the chunk's own cells (padded 1..32) produce faces; the halo is read as
neighbours so faces on the chunk boundary are culled against the adjacent chunk.
'''
import time

import numpy

from cubeworld import config
from cubeworld import logutil
from cubeworld.blocks import BLOCK_OCCLUDES, BLOCK_OCCLUDES_SAME, face_color
from cubeworld.grid import PADDED

OCCLUDES = BLOCK_OCCLUDES.astype(bool)
OCCLUDES_SAME = BLOCK_OCCLUDES_SAME.astype(bool)

# (normal, u axis, v axis) with u x v == normal, so quads wind counter-clockwise
# seen from outside in a right-handed y-up frame.
FACES = [
    ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
    ((0, 0, -1), (-1, 0, 0), (0, 1, 0)),
    ((1, 0, 0), (0, 0, -1), (0, 1, 0)),
    ((0, 1, 0), (1, 0, 0), (0, 0, -1)),
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
]

QUAD_INDICES = numpy.array([0, 1, 2, 1, 3, 2], dtype=numpy.uint32)


def _axis(vector):
    for a, s in enumerate(vector):
        if s:
            return a, s
    raise ValueError(f"not an axis vector: {vector}")


class Mesh(object):
    """ Triangle list buffers for one chunk, positions in padded grid units.

    """
    def __init__(self, positions=None, normals=None, uvs=None, colors=None, indices=None):
        self.positions = positions if positions is not None else numpy.zeros((0, 3), dtype=numpy.float32)
        self.normals = normals if normals is not None else numpy.zeros((0, 3), dtype=numpy.float32)
        self.uvs = uvs if uvs is not None else numpy.zeros((0, 2), dtype=numpy.float32)
        self.colors = colors if colors is not None else numpy.zeros((0, 4), dtype=numpy.float32)
        self.indices = indices if indices is not None else numpy.zeros((0, ), dtype=numpy.uint32)

    @property
    def generated(self):
        return len(self.positions)

    @property
    def quad_count(self):
        return len(self.indices) // 6

    def is_empty(self):
        return self.generated == 0

    def __repr__(self):
        return f"Mesh(quads={self.quad_count}, vertices={self.generated})"


class TriMeshCollider(object):
    """Static triangle-mesh collision shape sharing the mesh's vertex layout."""
    def __init__(self, vertices, triangles):
        self.vertices = vertices
        self.triangles = triangles

    @classmethod
    def from_mesh(cls, mesh):
        return cls(mesh.positions.copy(), mesh.indices.reshape(-1, 3).copy())

    def __len__(self):
        return len(self.triangles)


def exposed_faces(blocks):
    """ Face visibility for the interior of a padded [x, y, z] block array.

    Returns a list with one (32, 32, 32) uint8 array per entry of FACES holding
    the voxel id where that face is visible and 0 elsewhere.
    """
    inner = slice(1, PADDED - 1)
    cur = blocks[inner, inner, inner]
    filled = cur != 0
    keys = []
    for normal, _, _ in FACES:
        dx, dy, dz = normal
        neighbor = blocks[1 + dx:PADDED - 1 + dx, 1 + dy:PADDED - 1 + dy, 1 + dz:PADDED - 1 + dz]
        # neighbor hides the face if it is opaque, or the same type and that type hides its own kind (leaves)
        neighbor_occ = OCCLUDES[neighbor] | (OCCLUDES_SAME[neighbor] & (neighbor == cur))
        keys.append(numpy.where(filled & ~neighbor_occ, cur, 0).astype(numpy.uint8))
    return keys


def greedy_rects(keys, greedy=True):
    """ Cover the non-zero cells of a 2-D key array with rectangles.

    Scans row-major; each rectangle grows along the second axis first, then
    along the first axis while whole rows match. Returns rows of
    (p0, q0, p1, q1, key) with exclusive upper bounds.
    """
    m = numpy.array(keys, copy=True)
    rows, cols = m.shape
    rects = []
    for p, q in numpy.argwhere(m):
        v = m[p, q]
        if v == 0:
            continue #already merged into an earlier rectangle
        q1 = q + 1
        p1 = p + 1
        if greedy:
            while q1 < cols and m[p, q1] == v:
                q1 += 1
            while p1 < rows and numpy.all(m[p1, q:q1] == v):
                p1 += 1
        m[p:p1, q:q1] = 0
        rects.append((p, q, p1, q1, v))
    return rects


class GreedyMesher(object):
    '''
    Builds a Mesh for a VoxelGrid. With `greedy` off every visible face is its
    own unit quad; otherwise coplanar faces of the same voxel type are merged.
    Output depends only on the grid and the atlas.
    '''
    def __init__(self, atlas, greedy=None):
        self.atlas = atlas
        self.greedy = greedy if greedy is not None else getattr(config, 'GREEDY_MERGE', True)

    def mesh(self, grid):
        start = time.perf_counter()
        blocks = grid.blocks
        positions = []
        normals = []
        uvs = []
        colors = []
        indices = []
        nverts = 0
        for (normal, u, v), keys in zip(FACES, exposed_faces(blocks)):
            if not keys.any():
                continue
            quads = self._face_quads(normal, u, v, keys)
            if not quads:
                continue
            corners, types = quads
            n = len(types)
            positions.append(corners.reshape(-1, 3))
            normals.append(numpy.tile(numpy.array(normal, dtype=numpy.float32), (n * 4, 1)))
            present = numpy.unique(types).tolist()
            color_table = {t: face_color(t, normal) for t in present}
            uv_table = {t: self.atlas.face_uv(t, normal) for t in present}
            colors.append(numpy.repeat(numpy.array([color_table[t] for t in types.tolist()]), 4, axis=0))
            uvs.append(numpy.concatenate([uv_table[t] for t in types.tolist()]))
            base = nverts + 4 * numpy.arange(n, dtype=numpy.uint32)
            indices.append((base[:, numpy.newaxis] + QUAD_INDICES).ravel())
            nverts += n * 4
        if not positions:
            mesh = Mesh()
        else:
            mesh = Mesh(
                positions=numpy.concatenate(positions).astype(numpy.float32),
                normals=numpy.concatenate(normals).astype(numpy.float32),
                uvs=numpy.concatenate(uvs).astype(numpy.float32),
                colors=numpy.concatenate(colors).astype(numpy.float32),
                indices=numpy.concatenate(indices).astype(numpy.uint32),
            )
        ms = (time.perf_counter() - start) * 1000.0
        logutil.log("MESH", f"{mesh.quad_count} quads {mesh.generated} verts greedy={self.greedy} in {ms:.2f}ms", "DEBUG")
        return mesh

    def _face_quads(self, normal, u, v, keys):
        """ Corner positions (n, 4, 3) and voxel ids (n,) for one face direction.

        Returns () when nothing is visible.
        """
        a, s = _axis(normal)
        b, c = [i for i in range(3) if i != a]
        lo = []
        hi = []
        types = []
        for k in range(keys.shape[a]):
            layer = numpy.take(keys, k, axis=a)
            if not layer.any():
                continue
            # padded coordinate of the face plane
            plane = k + 1 + (1 if s > 0 else 0)
            for p0, q0, p1, q1, t in greedy_rects(layer, self.greedy):
                rlo = [0, 0, 0]
                rhi = [0, 0, 0]
                rlo[a] = rhi[a] = plane
                rlo[b], rhi[b] = p0 + 1, p1 + 1
                rlo[c], rhi[c] = q0 + 1, q1 + 1
                lo.append(rlo)
                hi.append(rhi)
                types.append(t)
        if not types:
            return ()
        lo = numpy.array(lo, dtype=numpy.float32)
        hi = numpy.array(hi, dtype=numpy.float32)
        ua, us = _axis(u)
        va, vs = _axis(v)
        corners = numpy.repeat(lo[:, numpy.newaxis, :], 4, axis=1)
        # corner order: (min u, min v), (max u, min v), (min u, max v), (max u, max v)
        for i, (umax, vmax) in enumerate(((False, False), (True, False), (False, True), (True, True))):
            corners[:, i, ua] = (hi if umax == (us > 0) else lo)[:, ua]
            corners[:, i, va] = (hi if vmax == (vs > 0) else lo)[:, va]
        return corners, numpy.array(types, dtype=numpy.intp)
