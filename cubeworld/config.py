import os

# Size of chunks used for generation, meshing and edits.
CHUNK_SIZE = 32 #edge length in voxels (x, y and z)
CHUNK_PADDED = CHUNK_SIZE + 2 #one voxel halo on every side
WORLD_HEIGHT_CHUNKS = 4 #number of chunks stacked in y
WORLD_HEIGHT = WORLD_HEIGHT_CHUNKS * CHUNK_SIZE

# Generation window: chunk columns within this radius of the centre column are generated.
GENERATION_RADIUS = 2
GENERATION_CENTER = (0, 0) #chunk (x, z) of the centre column

# Default world seed (None picks one from the clock).
WORLD_SEED = 12345

# Terrain height field (fBm simplex noise).
HEIGHT_AMPLITUDE = 20.0 #max height above/below the base level
HEIGHT_FREQUENCY = 1.0 / 128
HEIGHT_OCTAVES = 6
HEIGHT_LACUNARITY = 2.0
HEIGHT_PERSISTENCE = 0.5

# Biome field (same family, independently seeded).
BIOME_FREQUENCY = 1.0 / 160
BIOME_OCTAVES = 4
BIOME_DIRT_BELOW = -0.2
BIOME_STONE_ABOVE = 0.2

# Sub-surface material. When False every buried voxel is Sand.
SUBSURFACE_VARIETY = False
SUBSURFACE_FREQUENCY = 1.0 / 24
SUBSURFACE_STONE_ABOVE = 0.25

# Vegetation
VEGETATION = True
TREE_SPACING = 6.0 #minimum distance between tree trunks (world units)
TREE_SAMPLER_ATTEMPTS = 30

# Meshing
GREEDY_MERGE = True
GRASS_TINT = (0.1, 0.8, 0.1, 1.0)
DEFAULT_TINT = (1.0, 1.0, 1.0, 1.0)

# Texture atlas descriptor (pre-built, external to the core).
ATLAS_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'spritesheet.json')

# Edits
BUILD_VOXEL = 'Cobblestone'
DIG_DISTANCE = 4.0 #max ray length for dig/build requests
# Ray hit points are nudged inside (dig) or outside (build) the struck block.
DIG_NUDGE = 1.1
BUILD_NUDGE = 0.9
BUILD_HALF_EXTENT = 0.5

# Base terrain fill workers (1 keeps generation on the calling thread).
GENERATION_WORKERS = 1

# Enable ANSI colors in logs.
LOG_COLOR = True

# Logging for mesh activity.
MESH_LOG = False

# Log each dropped vegetation voxel instead of one summary per tree.
LOG_STAMP_DETAIL = False

# Terrain level of a standalone sampler; a generator recentres it on its own height.
BASE_HEIGHT = WORLD_HEIGHT // 2
# Trees need this many voxels of clearance below the world ceiling.
TREE_HEADROOM = 12
