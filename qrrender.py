'''
Draw a SymbolModel into a pixel buffer, one shape per dark module.

A shape is a function of the position inside a cell, u (across) and
v (down), both in [0, 1), returning where the cell is painted dark.
Light modules are never painted.
'''
import io

import numpy as np
from matplotlib import pyplot as plt

import qrconstants as constants
from qrerrors import InvalidDimensions, UnknownShape


def square(u, v):
    return np.ones(np.broadcast(u, v).shape, dtype=bool)


def circle(u, v):
    return (u - 0.5) ** 2 + (v - 0.5) ** 2 <= 0.25


def rounded_square(u, v, radius=0.25):
    du = np.maximum(np.abs(u - 0.5) - (0.5 - radius), 0)
    dv = np.maximum(np.abs(v - 0.5) - (0.5 - radius), 0)
    return du ** 2 + dv ** 2 <= radius ** 2


def vertical(u, v):
    return np.broadcast_to(np.abs(u - 0.5) <= 0.25, np.broadcast(u, v).shape)


def horizontal(u, v):
    return np.broadcast_to(np.abs(v - 0.5) <= 0.25, np.broadcast(u, v).shape)


def diamond(u, v):
    return np.abs(u - 0.5) + np.abs(v - 0.5) <= 0.5


SHAPES = {
    'square': square,
    'circle': circle,
    'rounded_square': rounded_square,
    'vertical': vertical,
    'horizontal': horizontal,
    'diamond': diamond,
}


def get_shape(name):
    if callable(name):
        return name
    key = str(name).strip().lower().replace('-', '_')
    if key == 'roundedsquare':
        key = 'rounded_square'
    try:
        return SHAPES[key]
    except KeyError:
        raise UnknownShape('Unknown shape {!r}, should be one of {}'.format(
            name, ', '.join(SHAPES)))


def _color(value, default):
    if value is None:
        return np.array(default, dtype=np.uint8)
    if len(value) not in (3, 4):
        raise ValueError('Colour should be [r, g, b] or [r, g, b, a], got {!r}'.format(value))
    return np.array(value[:3], dtype=np.uint8)


def render(symbol, width=constants.DEFAULT_WIDTH, shape=constants.DEFAULT_SHAPE,
           border=constants.DEFAULT_BORDER, foreground=None, background=None):
    '''
    Pixel buffer of width x width with the quiet zone included.

    Returns uint8 grey levels (0 dark, 255 light), or RGB when a
    foreground or background colour is given.
    '''
    if isinstance(width, bool) or not isinstance(width, (int, np.integer)) or width <= 0:
        raise InvalidDimensions('Width must be a positive integer, got {!r}'.format(width))
    if border < 0:
        raise InvalidDimensions('Border must not be negative, got {!r}'.format(border))
    shape = get_shape(shape)

    modules = np.asarray(symbol.modules, dtype=bool)
    cells = modules.shape[0] + 2 * border
    if width < cells:
        raise InvalidDimensions('Width {} leaves less than one pixel for each of {} modules'.format(
            width, cells))
    cell = width / cells

    # Cell index and in-cell position of every pixel centre, per axis
    pos = (np.arange(width) + 0.5) / cell
    index = np.minimum(pos.astype(int), cells - 1) - border
    frac = pos - np.floor(pos)

    inside = (index >= 0) & (index < modules.shape[0])
    clipped = np.clip(index, 0, modules.shape[0] - 1)
    dark = modules[np.ix_(clipped, clipped)] & np.outer(inside, inside)
    dark &= shape(frac[np.newaxis, :], frac[:, np.newaxis])

    if foreground is None and background is None:
        return np.where(dark, 0, 255).astype(np.uint8)

    fg = _color(foreground, (0, 0, 0))
    bg = _color(background, (255, 255, 255))
    return np.where(dark[..., np.newaxis], fg, bg).astype(np.uint8)


def to_png(pixels):
    '''
    PNG bytes of a grey or RGB uint8 pixel buffer
    '''
    buf = io.BytesIO()
    if pixels.ndim == 2:
        plt.imsave(buf, pixels, cmap='gray', vmin=0, vmax=255, format='png')
    else:
        plt.imsave(buf, pixels, format='png')
    return buf.getvalue()
