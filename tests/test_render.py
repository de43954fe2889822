import numpy as np
import pytest

import qrrender
from qrencoder import encode
from qrerrors import InvalidDimensions, UnknownShape


@pytest.fixture
def symbol():
    return encode(b'test', 'M')


@pytest.mark.parametrize('width', [0, -5, 2.5, True])
def test_invalid_width(symbol, width):
    with pytest.raises(InvalidDimensions):
        qrrender.render(symbol, width)


def test_width_below_one_pixel_per_module(symbol):
    # 21 modules plus a 4 module border on each side
    assert qrrender.render(symbol, 29).shape == (29, 29)
    with pytest.raises(InvalidDimensions):
        qrrender.render(symbol, 28)
    assert qrrender.render(symbol, 21, border=0).shape == (21, 21)


def test_grey_buffer(symbol):
    pixels = qrrender.render(symbol, 300)
    assert pixels.shape == (300, 300)
    assert pixels.dtype == np.uint8
    assert set(np.unique(pixels)) <= {0, 255}
    # quiet zone of 4 modules at about 10.3 px each
    assert (pixels[:40] == 255).all()
    assert (pixels[:, -40:] == 255).all()


def test_colour_buffer(symbol):
    pixels = qrrender.render(symbol, 200, foreground=(10, 20, 30), background=[250, 240, 230, 255])
    assert pixels.shape == (200, 200, 3)
    assert tuple(pixels[0, 0]) == (250, 240, 230)
    assert (10, 20, 30) in {tuple(p) for p in pixels.reshape(-1, 3)}


def test_circle_leaves_cell_corners_light(symbol):
    cell = 300 / 29
    corner = int(np.ceil(4 * cell))
    centre = int(4.5 * cell)
    square = qrrender.render(symbol, 300, 'square')
    circle = qrrender.render(symbol, 300, 'circle')
    assert square[corner, corner] == 0
    assert circle[corner, corner] == 255
    assert square[centre, centre] == circle[centre, centre] == 0


@pytest.mark.parametrize('name', sorted(qrrender.SHAPES))
def test_every_shape_paints_module_centres(symbol, name):
    pixels = qrrender.render(symbol, 290, name, border=0)
    modules = np.array(symbol.modules)
    centres = (np.arange(21) * (290 / 21) + 290 / 42).astype(int)
    assert ((pixels[np.ix_(centres, centres)] == 0) == modules).all()


def test_shape_lookup():
    assert qrrender.get_shape('Circle') is qrrender.circle
    assert qrrender.get_shape('RoundedSquare') is qrrender.rounded_square
    assert qrrender.get_shape(qrrender.diamond) is qrrender.diamond
    with pytest.raises(UnknownShape):
        qrrender.get_shape('star')


def test_render_leaves_symbol_untouched(symbol):
    before = [row[:] for row in symbol.modules]
    qrrender.render(symbol, 300, 'circle')
    assert symbol.modules == before


def test_png_signature(symbol):
    assert qrrender.to_png(qrrender.render(symbol, 100)).startswith(b'\x89PNG\r\n\x1a\n')
    assert qrrender.to_png(qrrender.render(symbol, 100, foreground=(0, 0, 255))).startswith(b'\x89PNG')
