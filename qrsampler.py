'''
Pixel buffer to module grid for axis-aligned symbols.

The symbol is taken to span the bounding box of the dark pixels. Every
symbol size, together with a small inset for shapes that do not reach
the cell edge, is tried against the function patterns it implies, in all
four quarter-turn orientations. The closest matches are then refined by
moving the ends of each axis a fraction of a pixel at a time, so that
symbols drawn with one or two pixels per module are sampled inside the
right cells. The best match is sampled at module centres.
'''
import io
import logging

import numpy as np
from PIL import Image

import qrconstants as constants
from qrerrors import InvalidDimensions, SymbolNotFound
from qrsymbol import CellKind, SymbolModel, side_for_version

logger = logging.getLogger(__name__)

MIN_CONTRAST = 0.2
MIN_SCORE = 0.85
INSETS = (0.0, 0.125, 0.25)
# pixels, in sixteenths
EDGE_SHIFTS = np.arange(-12, 13) / 16
REFINE_CANDIDATES = 3

_templates = {}


def _template(version):
    '''
    (mask, expected values) of the fixed function cells of a version
    '''
    if version not in _templates:
        model = SymbolModel.for_version(version)
        mask = np.array([[kind is CellKind.FUNCTION for kind in row] for row in model.kinds])
        values = np.array(model.modules, dtype=bool)
        _templates[version] = (mask, values[mask])
    return _templates[version]


def read_image(data):
    '''
    Pixel buffer of encoded image bytes, in any format Pillow reads
    '''
    image = Image.open(io.BytesIO(data))
    try:
        image.load()
    except (OSError, SyntaxError, ValueError) as e:
        raise SymbolNotFound('Unable to read {} image: {}'.format(image.format, e))
    return np.asarray(image.convert('RGBA'))


def to_gray(pixels):
    gray = np.asarray(pixels, dtype=float)
    if gray.ndim == 3:
        if gray.shape[2] == 4:
            # composite over a light background
            alpha = gray[..., 3:4] / max(gray[..., 3].max(), 1e-9)
            gray = gray[..., :3] * alpha + gray[..., :3].max() * (1 - alpha)
        gray = gray[..., :3].mean(axis=2)
    if gray.ndim != 2 or 0 in gray.shape:
        raise InvalidDimensions('Expected a 2D grey or RGB(A) pixel buffer, got shape {}'.format(
            np.shape(pixels)))
    return gray


def _centers(start, length, count, inset):
    pitch = length / (count - 2 * inset)
    centers = start - inset * pitch + (np.arange(count) + 0.5) * pitch
    return np.floor(centers).astype(int)


def _axis(edge, count, inset, shift=(0.0, 0.0)):
    '''
    Sample positions along one axis; edge is (start, length, limit) and
    shift moves the start and the end of the span independently
    '''
    start, length, limit = edge
    lo, hi = shift
    return np.clip(_centers(start + lo, length + hi - lo, count, inset), 0, limit - 1)


def _match(dark, ys, xs, turns, mask, expected):
    return np.mean(np.rot90(dark[np.ix_(ys, xs)], turns)[mask] == expected)


def _refine(dark, edges, version, insets, turns):
    '''
    Returns (score, ys, xs) after moving the ends of each axis towards the
    best function pattern match, settling in the middle of equally good
    shifts
    '''
    n = side_for_version(version)
    mask, expected = _template(version)
    shifts = [(0.0, 0.0), (0.0, 0.0)]

    def sample(shifts):
        return [_axis(edge, n, inset, shift) for edge, inset, shift in zip(edges, insets, shifts)]

    def score(shifts):
        ys, xs = sample(shifts)
        return _match(dark, ys, xs, turns, mask, expected)

    for _ in range(2):
        for axis in (0, 1):
            trial = list(shifts)
            results = []
            for lo in EDGE_SHIFTS:
                for hi in EDGE_SHIFTS:
                    trial[axis] = (lo, hi)
                    results.append((score(trial), lo, hi))
            top = max(r[0] for r in results)
            tied = [(lo, hi) for s, lo, hi in results if s == top]
            trial[axis] = tuple(np.mean(tied, axis=0))
            shifts[axis] = trial[axis] if score(trial) == top else tied[0]

    ys, xs = sample(shifts)
    return _match(dark, ys, xs, turns, mask, expected), ys, xs


def sample_grid(pixels):
    '''
    Boolean module grid (True = dark) of the symbol in pixels, quiet zone
    excluded and rotated upright
    '''
    gray = to_gray(pixels)
    lo, hi = gray.min(), gray.max()
    if hi - lo <= MIN_CONTRAST * hi:
        raise SymbolNotFound('Insufficient contrast in {}x{} image'.format(*gray.shape))
    dark = gray < (lo + hi) / 2

    rows = np.flatnonzero(dark.any(axis=1))
    cols = np.flatnonzero(dark.any(axis=0))
    height = rows[-1] + 1 - rows[0]
    width = cols[-1] + 1 - cols[0]
    edges = ((rows[0], height, dark.shape[0]), (cols[0], width, dark.shape[1]))

    candidates = []
    for version in range(constants.MIN_VERSION, constants.MAX_VERSION + 1):
        n = side_for_version(version)
        if min(width, height) < n:
            break
        mask, expected = _template(version)
        best = None
        for inset_x in INSETS:
            xs = _axis(edges[1], n, inset_x)
            for inset_y in INSETS:
                ys = _axis(edges[0], n, inset_y)
                for turns in range(4):
                    score = _match(dark, ys, xs, turns, mask, expected)
                    if best is None or score > best[0]:
                        best = (score, version, turns, (inset_y, inset_x))
        candidates.append(best)

    # stable, so smaller versions win ties
    candidates.sort(key=lambda c: -c[0])
    best = None
    for _, version, turns, insets in candidates[:REFINE_CANDIDATES]:
        score, ys, xs = _refine(dark, edges, version, insets, turns)
        if best is None or score > best[0]:
            best = (score, version, turns, ys, xs)

    if best is None or best[0] < MIN_SCORE:
        raise SymbolNotFound('No finder and timing patterns found (best match {:.0%})'.format(
            best[0] if best else 0))

    score, version, turns, ys, xs = best
    logger.debug('Sampled version %d grid, %d quarter turns, %.1f%% function match',
                 version, turns, score * 100)
    return np.rot90(dark[np.ix_(ys, xs)], turns)
