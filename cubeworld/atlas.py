'''
atlas.py -- maps block faces to rectangles of a pre-built texture atlas
'''
import json

import numpy

from cubeworld import config
from cubeworld import logutil
from cubeworld import blocks


class MissingAtlasFrame(KeyError):
    """Raised when a face asks for a frame the atlas descriptor does not define."""


class TextureAtlasMap(object):
    '''
    Frame rectangles in pixels plus the atlas size, as read from a
    `{frames: {name: {frame: {x, y, w, h}}}, meta: {size: {w, h}}}` descriptor.
    '''
    def __init__(self, frames, width, height):
        if width <= 0 or height <= 0:
            raise ValueError(f"atlas size must be positive, got {width}x{height}")
        self.frames = dict(frames)
        self.width = float(width)
        self.height = float(height)
        self._uv_cache = {}

    @classmethod
    def from_dict(cls, desc):
        try:
            frames = {}
            for name, entry in desc['frames'].items():
                f = entry['frame']
                frames[name] = (float(f['x']), float(f['y']), float(f['w']), float(f['h']))
            size = desc['meta']['size']
            width, height = float(size['w']), float(size['h'])
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"malformed atlas descriptor: {e!r}") from e
        return cls(frames, width, height)

    @classmethod
    def load(cls, path=None, validate=True):
        """ Read a JSON descriptor from `path` (config.ATLAS_PATH by default).

        With `validate`, every frame the block table can ask for must be present.
        """
        if path is None:
            path = config.ATLAS_PATH
        with open(path) as f:
            try:
                desc = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"malformed atlas descriptor {path}: {e}") from e
        atlas = cls.from_dict(desc)
        if validate:
            atlas.validate()
        logutil.log("ATLAS", f"loaded {len(atlas.frames)} frames {int(atlas.width)}x{int(atlas.height)} from {path}")
        return atlas

    def validate(self, names=None):
        if names is None:
            names = blocks.texture_frame_names()
        missing = sorted(set(names) - set(self.frames))
        if missing:
            raise MissingAtlasFrame(f"atlas has no frame(s) {', '.join(missing)}")

    def frame(self, name):
        try:
            return self.frames[name]
        except KeyError:
            raise MissingAtlasFrame(name) from None

    def uv(self, name):
        """ UVs for the four quad corners (min-u/min-v, max-u/min-v, min-u/max-v, max-u/max-v).

        The v axis is flipped: the first two corners use the bottom edge of the frame.
        """
        uv = self._uv_cache.get(name)
        if uv is None:
            x, y, w, h = self.frame(name)
            W, H = self.width, self.height
            uv = numpy.array([
                [x / W, (y + h) / H],
                [(x + w) / W, (y + h) / H],
                [x / W, y / H],
                [(x + w) / W, y / H],
            ], dtype=numpy.float32)
            uv.setflags(write=False)
            self._uv_cache[name] = uv
        return uv

    def face_uv(self, voxel_type, normal):
        return self.uv(blocks.texture_name(voxel_type, normal))
