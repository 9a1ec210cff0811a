"""Noise sources for height field synthesis.

Provides Gaussian-filtered fBm, torus-mapped 4D simplex fBm sampled one
column at a time, and plasma (midpoint displacement) fractals. All of them
tile seamlessly except plasma.
"""

import math

import numpy as np
from numpy.typing import NDArray
from opensimplex import OpenSimplex
from scipy import fft, ndimage

# Width of the noise domain mapped onto each torus circle
TORUS_SPAN = 2.0

# Above this sigma the spatial kernel gets wide enough that filtering in
# frequency space is cheaper
FFT_SIGMA_THRESHOLD = 30.0


def smoothed_white_noise(
    rng: np.random.Generator,
    shape: tuple[int, int],
    sigma: float,
) -> NDArray[np.float32]:
    """White noise blurred by a periodic Gaussian of the given sigma.

    The result is scaled so that most samples fall in [-1, 1]. Both the
    spatial and the frequency-space filter treat the field as periodic.
    """
    field = rng.standard_normal(shape)

    if sigma > FFT_SIGMA_THRESHOLD:
        spectrum = ndimage.fourier_gaussian(fft.fft2(field), sigma=sigma)
        field = fft.ifft2(spectrum).real
    else:
        field = ndimage.gaussian_filter(field, sigma=sigma, mode="wrap")

    spread = field.std()
    if spread > 0:
        field /= 2.5 * spread
    return field.astype(np.float32)


def gaussian_fbm(
    width: int,
    height: int,
    rng: np.random.Generator,
    base_wavelength: float,
    octaves: int = 6,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> NDArray[np.float32]:
    """Sum octaves of blurred white noise at shrinking wavelengths.

    Every octave draws from ``rng``, so the field depends only on the
    generator state. Features of an octave are about ``wavelength`` tiles
    across (sigma = wavelength / 3).

    Args:
        width: Output width in tiles.
        height: Output height in tiles.
        rng: Random number generator of the run.
        base_wavelength: Wavelength of the lowest octave in tiles.
        octaves: Number of octaves.
        lacunarity: Wavelength divisor between octaves.
        gain: Amplitude multiplier between octaves.

    Returns:
        Array of shape (height, width), roughly in [-1, 1].
    """
    amplitudes = gain ** np.arange(octaves)
    wavelengths = base_wavelength / lacunarity ** np.arange(octaves)

    total = np.zeros((height, width), dtype=np.float32)
    for amplitude, wavelength in zip(amplitudes, wavelengths):
        total += amplitude * smoothed_white_noise(rng, (height, width), wavelength / 3.0)

    total /= amplitudes.sum()
    return total


def simplex_fbm4(
    generator: OpenSimplex,
    x: float,
    y: float,
    z: float,
    w: float,
    octaves: int,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> float:
    """Sum octaves of 4D simplex noise at one point."""
    total = 0.0
    amplitude = 1.0
    frequency = 1.0
    max_amplitude = 0.0

    for _ in range(octaves):
        total += amplitude * generator.noise4(
            x * frequency, y * frequency, z * frequency, w * frequency
        )
        max_amplitude += amplitude
        frequency *= lacunarity
        amplitude *= gain

    return total / max_amplitude


def torus_column(
    generator: OpenSimplex,
    x: int,
    width: int,
    height: int,
    octaves: int,
    frequency: float,
    lacunarity: float = 2.0,
    gain: float = 0.5,
) -> NDArray[np.float32]:
    """Sample one column of a seamlessly tiling field.

    The column fraction and each row fraction are mapped onto circles in
    two independent 2D planes of a 4D noise space, so both the left/right
    and the top/bottom edges of the map line up.

    Args:
        generator: Shared simplex generator (read-only).
        x: Column index.
        width: Map width.
        height: Map height.
        octaves: Number of fBm octaves.
        frequency: Base frequency multiplier.

    Returns:
        1D array of ``height`` raw noise values.
    """
    radius = TORUS_SPAN / (2 * math.pi)
    s = x / width
    nx = math.cos(s * 2 * math.pi) * radius * frequency
    nz = math.sin(s * 2 * math.pi) * radius * frequency

    column = np.empty(height, dtype=np.float32)
    for y in range(height):
        t = y / height
        ny = math.cos(t * 2 * math.pi) * radius * frequency
        nw = math.sin(t * 2 * math.pi) * radius * frequency
        column[y] = simplex_fbm4(generator, nx, ny, nz, nw, octaves, lacunarity, gain)

    return column


def plasma_fractal(
    width: int,
    height: int,
    rng: np.random.Generator,
    roughness: float = 1.0,
    variability: float = 2.0,
    surrounded_by_water: bool = False,
) -> NDArray[np.float32]:
    """Generate a plasma fractal by midpoint displacement.

    Regions are subdivided through an explicit work stack. Each region sets
    its centre to the mean of its corners plus a random offset, and its edge
    midpoints to the mean of the two edge corners. A cell is only written
    the first time it is reached, so siblings sharing an edge agree on it.
    The displacement scale is divided by ``variability`` every level.

    Args:
        width: Output width in tiles.
        height: Output height in tiles.
        rng: Random number generator.
        roughness: Displacement scale of the first level.
        variability: Divisor applied to the displacement each level.
        surrounded_by_water: Seed the four corners at zero instead of random.

    Returns:
        2D array of raw (unnormalized) heights.
    """
    field = np.zeros((height, width), dtype=np.float32)
    written = np.zeros((height, width), dtype=bool)

    x1, y1 = width - 1, height - 1
    for cx, cy in ((0, 0), (x1, 0), (0, y1), (x1, y1)):
        if not written[cy, cx]:
            field[cy, cx] = 0.0 if surrounded_by_water else rng.random()
            written[cy, cx] = True

    def put(x: int, y: int, value: float) -> None:
        if not written[y, x]:
            field[y, x] = value
            written[y, x] = True

    stack = [(0, 0, x1, y1, roughness)]
    while stack:
        left, top, right, bottom, scale = stack.pop()
        if right - left <= 1 and bottom - top <= 1:
            continue

        c00 = field[top, left]
        c10 = field[top, right]
        c01 = field[bottom, left]
        c11 = field[bottom, right]

        mx = (left + right) // 2
        my = (top + bottom) // 2

        displacement = (rng.random() - 0.5) * 2.0 * scale
        put(mx, my, (c00 + c10 + c01 + c11) / 4.0 + displacement)
        put(mx, top, (c00 + c10) / 2.0)
        put(mx, bottom, (c01 + c11) / 2.0)
        put(left, my, (c00 + c01) / 2.0)
        put(right, my, (c10 + c11) / 2.0)

        child_scale = scale / variability
        stack.append((left, top, mx, my, child_scale))
        stack.append((mx, top, right, my, child_scale))
        stack.append((left, my, mx, bottom, child_scale))
        stack.append((mx, my, right, bottom, child_scale))

    return field
