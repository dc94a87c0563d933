'''
edits.py -- single voxel dig/build edits and the remesh that follows them

An edit moves through LOCATED -> VALIDATED -> APPLIED -> REMESHED, or ends
FAILED when no chunk holds the target point or the build gate refuses it.
'''
import enum
import math
from collections import namedtuple

from cubeworld import config
from cubeworld import logutil
from cubeworld.blocks import VoxelType
from cubeworld.grid import HALO_MAX
from cubeworld.world import ChunkUpdate, mesh_chunk


class EditKind(enum.Enum):
    Dig = 'dig'
    Build = 'build'


class EditState(enum.Enum):
    LOCATED = 'located'
    VALIDATED = 'validated'
    APPLIED = 'applied'
    REMESHED = 'remeshed'
    FAILED = 'failed'


class OutOfBoundsEdit(ValueError):
    """No registered chunk holds the edit's target point."""


# Axis aligned box handed to the build gate.
BuildCuboid = namedtuple('BuildCuboid', ['center', 'half_extent'])


class EditEvent(object):
    def __init__(self, kind, world_position):
        self.kind = EditKind(kind)
        self.world_position = tuple(float(c) for c in world_position)

    def __repr__(self):
        return f"EditEvent({self.kind.name}, {self.world_position})"


class EditResult(object):
    '''
    Outcome of one edit. `states` lists every state reached in order; `state`
    is the last. `generated` maps each remeshed chunk to its vertex count and
    `updates` holds the ChunkUpdates that were published.
    '''
    def __init__(self, event):
        self.event = event
        self.states = []
        self.reason = None
        self.chunks = []
        self.generated = {}
        self.updates = []

    @property
    def state(self):
        return self.states[-1] if self.states else None

    @property
    def ok(self):
        return self.state == EditState.REMESHED

    def __repr__(self):
        return f"EditResult({self.event!r}, {self.state}, chunks={self.chunks}, reason={self.reason})"


def is_finite_point(point):
    return all(math.isfinite(c) for c in point)


def highlight_cell(point):
    """Centre of the unit cell holding `point`, for the outline cube."""
    return tuple(math.floor(c) + 0.5 for c in point)


def build_cuboid(point):
    return BuildCuboid(highlight_cell(point), getattr(config, 'BUILD_HALF_EXTENT', 0.5))


def edit_from_ray_hit(kind, origin, direction, toi, max_distance=None):
    """ Turn a ray hit into an edit event.

    The hit point is pushed slightly into the struck block for a dig and
    slightly back out of it for a build. Returns None when there was no hit
    within `max_distance`.
    """
    kind = EditKind(kind)
    if max_distance is None:
        max_distance = getattr(config, 'DIG_DISTANCE', 4.0)
    if toi is None or toi > max_distance:
        return None
    if kind == EditKind.Dig:
        nudge = getattr(config, 'DIG_NUDGE', 1.1)
    else:
        nudge = getattr(config, 'BUILD_NUDGE', 0.9)
    point = tuple(o + d * toi * nudge for o, d in zip(origin, direction))
    return EditEvent(kind, point)


class MutationService(object):
    '''
    Applies edit events to the chunks of a ChunkRegistry and publishes the
    rebuilt mesh and collider of every chunk that changed.

    A point on a chunk boundary also lives in the halo of up to seven
    neighbours; all of them take the write and are remeshed.
    '''
    def __init__(self, registry, mesher, build_voxel=None, build_gate=None):
        self.registry = registry
        self.mesher = mesher
        if build_voxel is None:
            build_voxel = VoxelType[getattr(config, 'BUILD_VOXEL', 'Cobblestone')]
        self.build_voxel = VoxelType(build_voxel)
        # callable(BuildCuboid) -> True when a dynamic body occupies the cell
        self.build_gate = build_gate
        self.listeners = []
        self._seq = 0

    def subscribe(self, listener):
        """`listener(update)` is called with each published ChunkUpdate."""
        self.listeners.append(listener)
        return listener

    def unsubscribe(self, listener):
        self.listeners.remove(listener)

    def submit(self, event):
        """ Gate a build request, then apply the edit.

        """
        # a non-finite target is left for apply to reject as out of bounds
        if (event.kind == EditKind.Build and self.build_gate is not None
                and is_finite_point(event.world_position)):
            cuboid = build_cuboid(event.world_position)
            if self.build_gate(cuboid):
                result = EditResult(event)
                result.reason = 'occupied'
                result.states.append(EditState.FAILED)
                logutil.log("EDIT", f"build at {cuboid.center} blocked by a dynamic body")
                return result
        return self.apply(event)

    def locate(self, event):
        """ (chunk, padded cell) for every chunk whose grid holds the target.

        Raises OutOfBoundsEdit when there is none.
        """
        p = event.world_position
        if not is_finite_point(p):
            raise OutOfBoundsEdit(f"{event.kind.name} at {p} is not a finite point")
        targets = []
        for chunk in self.registry.chunks_covering(p):
            local = chunk.local_cell(p)
            if all(0 <= c <= HALO_MAX for c in local):
                targets.append((chunk, local))
        if not targets:
            raise OutOfBoundsEdit(f"{event.kind.name} at {p} is outside every chunk")
        return targets

    def apply(self, event):
        self._seq += 1
        logutil.set_tick(self._seq)
        result = EditResult(event)
        try:
            try:
                targets = self.locate(event)
            except OutOfBoundsEdit as e:
                result.reason = 'out_of_bounds'
                result.states.append(EditState.FAILED)
                logutil.log("EDIT", f"dropped: {e}", "WARN")
                return result
            result.states.append(EditState.LOCATED)
            result.states.append(EditState.VALIDATED)

            value = VoxelType.Empty if event.kind == EditKind.Dig else self.build_voxel
            for chunk, local in targets:
                chunk.grid.set(*local, value)
                chunk.dirty = True
                result.chunks.append(chunk.coord)
            result.states.append(EditState.APPLIED)

            for chunk, _ in targets:
                mesh = mesh_chunk(chunk, self.mesher)
                result.generated[chunk.coord] = mesh.generated
                if not mesh.generated:
                    logutil.log("EDIT", f"chunk {chunk.coord} is now empty; mesh cleared", "DEBUG")
                    continue
                chunk.revision += 1
                update = ChunkUpdate(chunk.coord, chunk.mesh, chunk.collider, chunk.revision, chunk.translation)
                result.updates.append(update)
                for listener in self.listeners:
                    listener(update)
            result.states.append(EditState.REMESHED)
            logutil.log("EDIT", f"{event.kind.name} at {event.world_position} -> {value.name} "
                                f"chunks={result.chunks} published={len(result.updates)}")
            return result
        finally:
            logutil.set_tick(None)
