#
# N-dimensional simplex noise, vectorized with numpy, plus fractal (fBm) sums
# and a Poisson-disk point sampler.
#
# The simplex code is based on public domain code by Stefan Gustavson
# (stegu@itn.liu.se), with the better rank ordering method from 2012.
#
import itertools
import math

import numpy


p = numpy.array( [151,160,137,91,90,15,
    131,13,201,95,96,53,194,233,7,225,140,36,103,30,69,142,8,99,37,240,21,10,23,
    190, 6,148,247,120,234,75,0,26,197,62,94,252,219,203,117,35,11,32,57,177,33,
    88,237,149,56,87,174,20,125,136,171,168, 68,175,74,165,71,134,139,48,27,166,
    77,146,158,231,83,111,229,122,60,211,133,230,220,105,92,41,55,46,245,40,244,
    102,143,54, 65,25,63,161, 1,216,80,73,209,76,132,187,208, 89,18,169,200,196,
    135,130,116,188,159,86,164,100,109,198,173,186, 3,64,52,217,226,250,124,123,
    5,202,38,147,118,126,255,82,85,212,207,206,59,227,47,16,58,17,182,189,28,42,
    223,183,170,213,119,248,152, 2,44,154,163, 70,221,153,101,155,167, 43,172,9,
    129,22,39,253, 19,98,108,110,79,113,224,232,178,185, 112,104,218,246,97,228,
    251,34,242,193,238,210,144,12,191,179,162,241, 81,51,145,235,249,14,239,107,
    49,192,214, 31,181,199,106,157,184, 84,204,176,115,121,50,45,127, 4,150,254,
    138,236,205,93,222,114,67,29,24,72,243,141,128,195,78,66,215,61,156,180] )


def _permutation(seed):
    if seed is None:
        base = p
    else:
        base = numpy.random.RandomState(seed % 2**32).permutation(256)
    # To remove the need for index wrapping, double the permutation table length
    return base[numpy.arange(512) & 255]


# returns floor of floating point array by coercing to integer
def fastfloor(x):
    return numpy.array(numpy.floor(x), dtype = numpy.int64)


def _gradients(N):
    grad = ((0,-1,1),)*N
    grad = numpy.array(list(itertools.product(*grad))[1:])
    return grad[numpy.abs(grad).sum(-1)>=N-1]


#  # N-D simplex noise, better simplex rank ordering method 2012-03-09
class SimplexNoise(object):
    def __init__(self, seed=None):
        self.seed = seed
        self.perm0 = _permutation(seed)
        self._grad = {}

    def noise(self, Z):
        """ Noise values in roughly [-1, 1] for an (M, N) array of M points in N dimensions.

        """
        Z = numpy.asarray(Z, dtype=numpy.float64)
        # Skew the input space to determine which cell of simplices we're in
        N = Z.shape[-1] #number of dimensions
        N1 = N+1 # number of simplex corners
        Fn = 1.0*(N1**0.5 - 1)/N
        Gn = 1.0*(N1 - N1**0.5)/N/N1

        #skew the Z data and store in z0
        s = Z.sum(-1) * Fn # Factor for skewing
        cell = fastfloor(Z+s[:,numpy.newaxis])
        t = (cell.sum(-1) * Gn) # Factor for unskewing
        Z0 = cell - t[:,numpy.newaxis]
        z0 = Z - Z0
        # Only the hash lookup wraps; z0 stays continuous for negative and large inputs.
        i = numpy.mod(cell, 256)

        # Use magnitude ordering to determine the simplices that the point z0 is located in
        rank = numpy.zeros(Z.shape)
        for l,k in itertools.combinations(range(N),2):
            rank[:,k] += z0[:,k]>=z0[:,l]
            rank[:,l] += z0[:,k]<z0[:,l]

        # ind will contain the skewed indices of the N+1 simplex corners
        b = numpy.arange(N1)[:,numpy.newaxis,numpy.newaxis]
        ind = rank >= N - b
        # zk contains the offsets from each corner
        zk = z0 - ind + 1.0 * b * Gn

        indi = ind + i
        # the gradients are assigned to each corner through the permutation table
        grad = self._grad.get(N)
        if grad is None:
            grad = self._grad[N] = _gradients(N)

        gik = 0
        for x in range(N-1,-1,-1):
            gik = self.perm0[indi[:,:,x] + gik]
        gik = gik%(grad.shape[0])
        # Calculate the contribution from the corners
        tk = 0.5 - (zk*zk).sum(-1)
        tp = tk>=0
        tk = tp * tk * tk
        nk = tp * tk * tk * (grad[gik]*zk).sum(-1)

        # Sum up and scale the result to cover the range [-1,1]
        return nk.sum(0) * (2**6)


class FractalNoise(object):
    """ Fractal Brownian motion over 2-D simplex noise.

    Octave `o` samples at frequency * lacunarity**o with weight persistence**o;
    the weighted sum is normalised back into roughly [-1, 1]. Calls are pure
    functions of the inputs and the constructor arguments.
    """
    def __init__(self, seed=None, frequency=1.0, octaves=6, lacunarity=2.0, persistence=0.5):
        if octaves < 1:
            raise ValueError("octaves must be >= 1")
        self.seed = seed
        self.frequency = float(frequency)
        self.lacunarity = float(lacunarity)
        self.persistence = float(persistence)
        self.layers = [SimplexNoise(seed=None if seed is None else seed + o) for o in range(octaves)]
        self._norm = sum(self.persistence ** o for o in range(octaves))

    def __call__(self, x, z):
        x, z = numpy.broadcast_arrays(numpy.asarray(x, dtype=numpy.float64),
                                      numpy.asarray(z, dtype=numpy.float64))
        shape = x.shape
        Z = numpy.stack([x.ravel(), z.ravel()], axis=-1)
        total = numpy.zeros(len(Z))
        freq = self.frequency
        amp = 1.0
        for layer in self.layers:
            total += amp * layer.noise(Z * freq)
            freq *= self.lacunarity
            amp *= self.persistence
        total = (total / self._norm).reshape(shape)
        if total.ndim == 0:
            return float(total)
        return total


def poisson_disk(width, height, radius, rng, max_attempts=30):
    """ Bridson's Poisson-disk sampling in the rectangle [0, width) x [0, height).

    Parameters
    ----------
    width, height : float
        Domain size.
    radius : float
        Minimum distance between any two samples.
    rng : numpy.random.Generator
        Source of randomness; a seeded generator makes the result reproducible.
    max_attempts : int
        Candidates tried around an active sample before it is retired.

    Returns
    -------
    points : list of (x, y) float tuples

    """
    if width <= 0 or height <= 0 or radius <= 0:
        return []
    cell_size = radius / math.sqrt(2.0)
    grid = {} # (gx, gy) -> point index
    points = []
    active = []

    def _cell(x, y):
        return int(x // cell_size), int(y // cell_size)

    def _fits(x, y):
        gx, gy = _cell(x, y)
        # a point closer than radius can be at most two cells away
        for dx in range(-2, 3):
            for dy in range(-2, 3):
                idx = grid.get((gx + dx, gy + dy))
                if idx is None:
                    continue
                ox, oy = points[idx]
                if (x - ox) ** 2 + (y - oy) ** 2 < radius * radius:
                    return False
        return True

    x0 = float(rng.uniform(0, width))
    y0 = float(rng.uniform(0, height))
    points.append((x0, y0))
    active.append(0)
    grid[_cell(x0, y0)] = 0

    while active:
        slot = int(rng.integers(len(active)))
        px, py = points[active[slot]]
        found = False
        for _ in range(max_attempts):
            angle = rng.uniform(0, 2.0 * math.pi)
            dist = rng.uniform(radius, 2.0 * radius)
            nx = px + dist * math.cos(angle)
            ny = py + dist * math.sin(angle)
            if nx < 0 or nx >= width or ny < 0 or ny >= height:
                continue
            if not _fits(nx, ny):
                continue
            grid[_cell(nx, ny)] = len(points)
            active.append(len(points))
            points.append((nx, ny))
            found = True
            break
        if not found:
            active[slot] = active[-1]
            active.pop()
    return points
