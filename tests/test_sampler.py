import io
import random

import numpy as np
import pytest
from PIL import Image

import qrconstants as constants
import qrrender
import qrsampler
import qrutil as util
from qrdecoder import decode
from qrencoder import encode
from qrerrors import SymbolNotFound


def round_trip(payload, level='M', shape='square', width=300):
    symbol = encode(payload, level)
    pixels = qrrender.render(symbol, width, shape)
    return decode(qrsampler.sample_grid(pixels))


@pytest.mark.parametrize('shape', ['square', 'circle'])
@pytest.mark.parametrize('payload', [b'test', b'https://example.com/some/path?q=1', bytes(range(40))])
def test_round_trip_levels_and_shapes(payload, level, shape):
    assert round_trip(payload, level, shape, width=400) == payload


@pytest.mark.parametrize('shape', sorted(qrrender.SHAPES))
def test_every_shape_decodes(shape):
    assert round_trip(b'test', 'M', shape) == b'test'


def test_shape_does_not_change_sampled_modules():
    symbol = encode(b'test', 'M')
    square = qrsampler.sample_grid(qrrender.render(symbol, 300, 'square'))
    circle = qrsampler.sample_grid(qrrender.render(symbol, 300, 'circle'))
    assert (square == circle).all()
    assert (square == np.array(symbol.modules)).all()


def test_larger_symbol_through_png():
    payload = bytes((i * 7) % 256 for i in range(300))
    symbol = encode(payload, 'L')
    assert symbol.version >= 7
    png = qrrender.to_png(qrrender.render(symbol, 800, 'circle'))
    assert decode(qrsampler.sample_grid(qrsampler.read_image(png))) == payload


@pytest.fixture(scope='module')
def full_symbol():
    rng = random.Random(40)
    capacity = util.byte_capacity(constants.MAX_VERSION, constants.ERR_CORR_L)
    payload = bytes(rng.randrange(256) for _ in range(capacity))
    return payload, encode(payload, 'L')


@pytest.mark.parametrize('shape', ['square', 'circle'])
@pytest.mark.parametrize('width', [300, 1000])
def test_largest_symbol_round_trip(full_symbol, shape, width):
    payload, symbol = full_symbol
    assert symbol.version == constants.MAX_VERSION
    grid = qrsampler.sample_grid(qrrender.render(symbol, width, shape))
    if shape == 'square':
        assert (grid == np.array(symbol.modules)).all()
    assert decode(grid) == payload


@pytest.mark.parametrize('payload_size', [1200, 1800, 2300])
def test_one_or_two_pixels_per_module(payload_size):
    payload = bytes((i * 11) % 256 for i in range(payload_size))
    symbol = encode(payload, 'M')
    grid = qrsampler.sample_grid(qrrender.render(symbol, 300, 'square'))
    assert (grid == np.array(symbol.modules)).all()
    assert decode(qrsampler.sample_grid(qrrender.render(symbol, 300, 'circle'))) == payload


@pytest.mark.parametrize('fmt', ['BMP', 'GIF', 'JPEG'])
def test_other_image_formats(fmt):
    symbol = encode(b'formats', 'M')
    buf = io.BytesIO()
    Image.fromarray(qrrender.render(symbol, 300)).save(buf, format=fmt)
    assert decode(qrsampler.sample_grid(qrsampler.read_image(buf.getvalue()))) == b'formats'


def test_truncated_image_names_format():
    png = qrrender.to_png(qrrender.render(encode(b'cut', 'M'), 300))
    with pytest.raises(SymbolNotFound, match='PNG'):
        qrsampler.read_image(png[:len(png) // 2])


def test_colour_png():
    symbol = encode(b'colour', 'Q')
    pixels = qrrender.render(symbol, 300, foreground=(20, 40, 160), background=(255, 255, 200))
    png = qrrender.to_png(pixels)
    assert decode(qrsampler.sample_grid(qrsampler.read_image(png))) == b'colour'


@pytest.mark.parametrize('turns', [1, 2, 3])
def test_rotated_symbol(turns):
    symbol = encode(b'rotated', 'H')
    pixels = np.rot90(qrrender.render(symbol, 300), turns)
    assert (qrsampler.sample_grid(pixels) == np.array(symbol.modules)).all()


def test_offset_in_larger_canvas():
    symbol = encode(b'offset', 'M')
    canvas = np.full((500, 450), 255, dtype=np.uint8)
    canvas[120:420, 60:360] = qrrender.render(symbol, 300, 'diamond')
    assert decode(qrsampler.sample_grid(canvas)) == b'offset'


def test_blank_image():
    with pytest.raises(SymbolNotFound):
        qrsampler.sample_grid(np.full((100, 100), 255, dtype=np.uint8))
    with pytest.raises(SymbolNotFound):
        qrsampler.sample_grid(np.zeros((100, 100), dtype=np.uint8))


def test_low_contrast_image():
    pixels = np.full((100, 100), 200, dtype=np.uint8)
    pixels[40:60, 40:60] = 190
    with pytest.raises(SymbolNotFound):
        qrsampler.sample_grid(pixels)


def test_no_symbol_in_image():
    pixels = np.full((200, 200), 255, dtype=np.uint8)
    pixels[50:150, 50:150] = 0
    with pytest.raises(SymbolNotFound):
        qrsampler.sample_grid(pixels)
