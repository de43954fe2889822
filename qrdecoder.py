import logging

import galois
import qrconstants as constants
import qrutil as util
from qrerrors import (
    FormatInfoCorrupt, InvalidDimensions, MalformedBitStream,
    UnrecoverableData, VersionInfoCorrupt,
)
from qrsymbol import SymbolModel, format_positions, version_for_side, version_positions

logger = logging.getLogger(__name__)


class QRDecoder:
    '''
    Turns a sampled module grid back into its payload. After decode() the
    recovered version, err_corr and mask_pattern stay on the instance.
    '''

    def __init__(self):
        self.clear()

    def clear(self):
        self.version = None
        self.err_corr = None
        self.mask_pattern = None
        self.corrections = []

    def decode(self, grid):
        self.clear()
        symbol = self.load_grid(grid)
        self.read_format_info(symbol)
        self.read_version_info(symbol)

        template = SymbolModel.for_version(self.version)
        template.modules = [list(row) for row in symbol.modules]
        unmasked = template.masked(self.mask_pattern)

        blocks = util.rs_blocks(self.version, self.err_corr)
        codewords = unmasked.read_codewords(sum(b.total_count for b in blocks))
        data = self.correct(codewords, blocks)
        return self.parse(data)

    def load_grid(self, grid):
        rows = [[bool(m) for m in row] for row in grid]
        side = len(rows)
        if any(len(row) != side for row in rows):
            raise InvalidDimensions('Module grid is not square')
        version = version_for_side(side)
        if version is None:
            raise InvalidDimensions('{} modules per side is not a QR symbol size'.format(side))
        return SymbolModel(version, modules=rows)

    def read_format_info(self, symbol):
        '''
        Level and mask from whichever format copy lies closest to a valid word
        '''
        found = []
        for positions in format_positions(symbol.size):
            decoded = util.decode_format_bits(symbol.read_word(positions))
            if decoded is not None:
                found.append(decoded)
        if not found:
            raise FormatInfoCorrupt('Neither format information copy is recoverable')
        if len({f[:2] for f in found}) > 1:
            logger.warning('Format information copies disagree: %s',
                           ', '.join('level {} mask {} ({} bit errors)'.format(
                               constants.ERR_CORR_NAMES[e], m, d) for e, m, d in found))

        err_corr, mask_pattern, distance = min(found, key=lambda f: f[2])
        self.err_corr = err_corr
        self.mask_pattern = mask_pattern
        logger.debug('Format info: level %s mask %d (%d bit errors)',
                     constants.ERR_CORR_NAMES[err_corr], mask_pattern, distance)

    def read_version_info(self, symbol):
        self.version = symbol.version
        if symbol.version < 7:
            return

        found = []
        for positions in version_positions(symbol.size):
            decoded = util.decode_version_bits(symbol.read_word(positions))
            if decoded is not None:
                found.append(decoded)
        if not found:
            raise VersionInfoCorrupt('Neither version information block is recoverable')

        version, distance = min(found, key=lambda f: f[1])
        if version != symbol.version:
            raise VersionInfoCorrupt('Version information says {} but grid side is {}'.format(
                version, symbol.size))
        logger.debug('Version info: %d (%d bit errors)', version, distance)

    def correct(self, codewords, blocks):
        '''
        Error correct every block and return the data codewords in order
        '''
        data = []
        for index, codeword_block in enumerate(util.deinterleave(codewords, blocks)):
            block = blocks[index]
            try:
                corrected = galois.rs_decode(codeword_block, block.ec_count)
            except galois.Uncorrectable as e:
                raise UnrecoverableData('Block {} of {}: {}'.format(index + 1, len(blocks), e))
            fixed = sum(1 for a, b in zip(codeword_block, corrected) if a != b)
            self.corrections.append(fixed)
            data.extend(corrected[:block.data_count])
        logger.debug('Corrected codewords per block: %s', self.corrections)
        return data

    def parse(self, data):
        '''
        Mode indicator, character count and payload, segment after
        segment, up to the terminator or the end of the data
        '''
        reader = util.BitReader(data)
        bits_number = util.bits_number_for_version(self.version)
        payload = bytearray()

        while reader.remaining() >= 4:
            mode = reader.read(4)
            if mode == constants.TERMINATOR:
                break
            if mode not in constants.MODE_INDICATORS:
                raise MalformedBitStream('Unsupported mode indicator {:04b}'.format(mode))

            count_bits = bits_number[mode]
            if reader.remaining() < count_bits:
                raise MalformedBitStream('Truncated character count')
            count = reader.read(count_bits)
            needed = util.segment_bit_length(mode, count)
            if needed > reader.remaining():
                raise MalformedBitStream('{} characters need {} bits, {} left'.format(
                    count, needed, reader.remaining()))

            if mode == constants.NUMERIC_MODE:
                payload += self.read_numeric(reader, count)
            elif mode == constants.ALPHANUMERIC_MODE:
                payload += self.read_alphanumeric(reader, count)
            else:
                payload += bytes(reader.read(8) for _ in range(count))

        return bytes(payload)

    @staticmethod
    def read_numeric(reader, count):
        digits = []
        while count > 0:
            group = min(count, 3)
            value = reader.read(constants.NUMBER_LENGTH[group])
            if value >= 10 ** group:
                raise MalformedBitStream('Numeric group {} out of range'.format(value))
            digits.append(str(value).zfill(group))
            count -= group
        return ''.join(digits).encode('ascii')

    @staticmethod
    def read_alphanumeric(reader, count):
        chars = bytearray()
        table = constants.ALPHANUMERIC_NUM
        while count > 1:
            value = reader.read(11)
            if value >= 45 * 45:
                raise MalformedBitStream('Alphanumeric pair {} out of range'.format(value))
            chars.append(table[value // 45])
            chars.append(table[value % 45])
            count -= 2
        if count:
            value = reader.read(6)
            if value >= 45:
                raise MalformedBitStream('Alphanumeric character {} out of range'.format(value))
            chars.append(table[value])
        return bytes(chars)


def decode(grid):
    '''
    Payload bytes of a boolean module grid (True = dark), quiet zone excluded
    '''
    return QRDecoder().decode(grid)
