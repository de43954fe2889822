import logging

import numpy as np
import pytest

import qrconstants as constants
import qrutil as util
from qrdecoder import QRDecoder, decode
from qrencoder import encode
from qrerrors import (
    FormatInfoCorrupt, InvalidDimensions, MalformedBitStream,
    UnrecoverableData, VersionInfoCorrupt,
)
from qrsymbol import SymbolModel, format_positions, version_positions

PAYLOADS = [
    b'',
    b'test',
    b'0123456789012345',
    b'HELLO WORLD $%*+-./:',
    bytes(range(256)),
    'The significant inscription found on an old key'.encode('utf-8'),
]


def write_word(symbol, positions, word):
    for i, (r, c) in enumerate(positions):
        symbol.modules[r][c] = bool((word >> i) & 1)


def far_format_word():
    '''A 15-bit word more than 3 bits away from every format word'''
    for word in range(1 << 15):
        if util.decode_format_bits(word) is None:
            return word


def symbol_from_data(data_codewords, version=1, err_corr=constants.ERR_CORR_M, mask=0):
    blocks = util.rs_blocks(version, err_corr)
    buffer = util.BitBuffer()
    for byte in data_codewords:
        buffer.put(byte, 8)
    symbol = SymbolModel.for_version(version)
    symbol.place_codewords(util.put_bytes(buffer, blocks))
    symbol = symbol.masked(mask)
    symbol.setup_type_info(err_corr, mask)
    symbol.setup_version_info()
    return symbol


@pytest.mark.parametrize('payload', PAYLOADS)
def test_round_trip(payload, level):
    symbol = encode(payload, level)
    assert decode(symbol.modules) == payload


@pytest.mark.parametrize('mask', range(8))
def test_round_trip_every_mask(mask):
    assert decode(encode(b'mask check', 'H', mask_pattern=mask).modules) == b'mask check'


def test_round_trip_multi_block_and_version_info():
    payload = bytes((i * 37) % 256 for i in range(600))
    symbol = encode(payload, 'Q')
    assert symbol.version >= 7
    assert len(util.rs_blocks(symbol.version, symbol.err_corr)) > 1
    assert decode(symbol.modules) == payload


def test_decoder_reports_symbol_parameters():
    symbol = encode(b'parameters', 'Q')
    decoder = QRDecoder()
    assert decoder.decode(np.array(symbol.modules)) == b'parameters'
    assert decoder.version == symbol.version
    assert decoder.err_corr == constants.ERR_CORR_Q
    assert decoder.mask_pattern == symbol.mask_pattern
    assert decoder.corrections == [0]


def test_corrects_half_ec_codewords(flip_codewords):
    # version 1-M: one block, 10 EC codewords
    symbol = encode(b'test', 'M')
    flip_codewords(symbol, [0, 3, 7, 12, 20])
    decoder = QRDecoder()
    assert decoder.decode(symbol.modules) == b'test'
    assert decoder.corrections == [5]


def test_too_many_errors_in_one_block(flip_codewords):
    symbol = encode(b'test', 'M')
    flip_codewords(symbol, [0, 3, 7, 12, 20, 25])
    with pytest.raises(UnrecoverableData):
        decode(symbol.modules)


def test_errors_spread_over_blocks(flip_codewords, block_codewords):
    payload = b'x' * 60
    symbol = encode(payload, 'Q', version=5)
    assert symbol.version == 5
    # 18 EC codewords per block, 9 correctable in each
    for block in range(4):
        flip_codewords(symbol, block_codewords(5, constants.ERR_CORR_Q, block)[:9])
    assert decode(symbol.modules) == payload

    symbol = encode(payload, 'Q', version=5)
    flip_codewords(symbol, block_codewords(5, constants.ERR_CORR_Q, 2)[:10])
    with pytest.raises(UnrecoverableData):
        decode(symbol.modules)


def test_one_format_copy_corrupted():
    word = far_format_word()
    for copy in (0, 1):
        symbol = encode(b'format copy', 'H')
        write_word(symbol, format_positions(symbol.size)[copy], word)
        decoder = QRDecoder()
        assert decoder.decode(symbol.modules) == b'format copy'
        assert decoder.err_corr == constants.ERR_CORR_H


def test_both_format_copies_corrupted():
    symbol = encode(b'format copy', 'H')
    word = far_format_word()
    for positions in format_positions(symbol.size):
        write_word(symbol, positions, word)
    with pytest.raises(FormatInfoCorrupt):
        decode(symbol.modules)


def test_format_bit_errors_corrected():
    symbol = encode(b'format bits', 'L')
    for positions in format_positions(symbol.size):
        word = symbol.read_word(positions) ^ 0b100000001000001
        write_word(symbol, positions, word)
    assert decode(symbol.modules) == b'format bits'


def test_disagreeing_format_copies_are_logged(caplog):
    symbol = encode(b'disagree', 'H', mask_pattern=2)
    other = util.FORMAT_CODEWORDS[(constants.ERR_CORR_L << 3) | 5]
    write_word(symbol, format_positions(symbol.size)[1], other)
    decoder = QRDecoder()
    with caplog.at_level(logging.WARNING, logger='qrdecoder'):
        assert decoder.decode(symbol.modules) == b'disagree'
    assert decoder.err_corr == constants.ERR_CORR_H
    assert decoder.mask_pattern == 2
    assert 'disagree' in caplog.text


def test_agreeing_format_copies_are_quiet(caplog):
    symbol = encode(b'agree', 'H')
    with caplog.at_level(logging.WARNING, logger='qrdecoder'):
        decode(symbol.modules)
    assert caplog.records == []


def test_version_info_recovery():
    symbol = encode(b'v' * 150, 'L')
    assert symbol.version == 7
    top_right, bottom_left = version_positions(symbol.size)
    write_word(symbol, top_right, 0)
    assert decode(symbol.modules) == b'v' * 150


def test_version_info_mismatch():
    symbol = encode(b'v' * 150, 'L')
    for positions in version_positions(symbol.size):
        write_word(symbol, positions, util.BCH_code_version_info(9))
    with pytest.raises(VersionInfoCorrupt):
        decode(symbol.modules)


def test_grid_must_be_a_symbol_size():
    with pytest.raises(InvalidDimensions):
        decode([[False] * 22 for _ in range(22)])
    with pytest.raises(InvalidDimensions):
        decode([[False] * 21 for _ in range(20)])


def test_count_exceeds_data():
    # byte mode claiming 255 characters in a 16 codeword symbol
    data = [0x4F, 0xF0] + [0xEC, 0x11] * 7
    with pytest.raises(MalformedBitStream):
        decode(symbol_from_data(data).modules)


def test_unsupported_mode():
    # Kanji mode indicator
    data = [0x80, 0x10] + [0xEC, 0x11] * 7
    with pytest.raises(MalformedBitStream):
        decode(symbol_from_data(data).modules)


def test_multiple_segments():
    buffer = util.BitBuffer()
    for segment in (util.QRData(b'123'), util.QRData(b'AB'), util.QRData(b'xy')):
        buffer.put(segment.mode, 4)
        buffer.put(len(segment), util.bits_number_for_version(1)[segment.mode])
        segment.write(buffer)
    buffer.put(0, 4)
    while len(buffer) % 8:
        buffer.set(False)
    data = buffer.buffer + [0xEC, 0x11] * 8
    assert decode(symbol_from_data(data[:16]).modules) == b'123ABxy'
