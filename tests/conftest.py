import pytest

import qrutil as util


def _flip_codewords(symbol, indexes):
    '''
    Invert every module of the given interleaved codewords, in place
    '''
    coords = list(symbol.zigzag())
    for k in indexes:
        for r, c in coords[8 * k:8 * k + 8]:
            symbol.modules[r][c] = not symbol.modules[r][c]
    return symbol


def _block_codewords(version, err_corr, block):
    '''
    Interleaved stream positions holding the codewords of one RS block
    '''
    blocks = util.rs_blocks(version, err_corr)
    total = sum(b.total_count for b in blocks)
    return util.deinterleave(list(range(total)), blocks)[block]


@pytest.fixture
def flip_codewords():
    return _flip_codewords


@pytest.fixture
def block_codewords():
    return _block_codewords


@pytest.fixture(params=['L', 'M', 'Q', 'H'])
def level(request):
    return request.param
