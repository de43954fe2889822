'''
In-memory QR matrix: module values plus the kind of every cell.

Function cells (finders, separators, timing, alignment, dark module) are
fixed per version. Reserved cells hold format/version information and turn
into function cells once that information is written. Everything else is a
data cell and is the only kind touched by placement and masking.
'''
import enum

import qrconstants as constants
import qrutil as util


class CellKind(enum.Enum):
    FUNCTION = 'function'
    RESERVED = 'reserved'
    DATA = 'data'


def side_for_version(version):
    return version * 4 + 17


def version_for_side(side):
    '''
    Version whose matrix has this side, or None
    '''
    version, rest = divmod(side - 17, 4)
    if rest or not constants.MIN_VERSION <= version <= constants.MAX_VERSION:
        return None
    return version


def format_positions(size):
    '''
    (row, col) of format bits 0..14 for both copies. The first copy wraps
    the top-left finder, the second is split between the top-right and
    bottom-left finders.
    '''
    first = []
    for i in range(15):
        if i < 6:
            first.append((i, 8))
        elif i < 8:
            first.append((i + 1, 8))
        elif i == 8:
            first.append((8, 7))
        else:
            first.append((8, 14 - i))

    second = []
    for i in range(15):
        if i < 8:
            second.append((8, size - 1 - i))
        else:
            second.append((size - 15 + i, 8))

    return first, second


def version_positions(size):
    '''
    (row, col) of version bits 0..17, top-right block then bottom-left block
    '''
    top_right = [(i // 3, i % 3 + size - 11) for i in range(18)]
    bottom_left = [(i % 3 + size - 11, i // 3) for i in range(18)]
    return top_right, bottom_left


_template_cache = {}


class SymbolModel:
    '''
    A square grid of modules for one version. modules[r][c] is True for a
    dark module; kinds[r][c] is its CellKind.
    '''

    def __init__(self, version, err_corr=None, mask_pattern=None,
                 modules=None, kinds=None):
        if not constants.MIN_VERSION <= version <= constants.MAX_VERSION:
            raise ValueError('Invalid version {}'.format(version))
        self.version = version
        self.err_corr = err_corr
        self.mask_pattern = mask_pattern
        self.size = side_for_version(version)
        self.modules = modules
        self.kinds = kinds

    @classmethod
    def for_version(cls, version):
        '''
        Blank symbol with every function pattern placed and the
        format/version areas reserved
        '''
        if version not in _template_cache:
            model = cls(version)
            model.modules = [[False] * model.size for _ in range(model.size)]
            model.kinds = [[CellKind.DATA] * model.size for _ in range(model.size)]
            model.setup_finder_pattern(0, 0)
            model.setup_finder_pattern(model.size - 7, 0)
            model.setup_finder_pattern(0, model.size - 7)
            model.setup_position_align_pattern()
            model.setup_timing_pattern()
            model.reserve_info_areas()
            _template_cache[version] = model
        return _template_cache[version].copy()

    def copy(self):
        return SymbolModel(self.version, self.err_corr, self.mask_pattern,
                           util.copy_mat(self.modules), util.copy_mat(self.kinds))

    def __eq__(self, other):
        if not isinstance(other, SymbolModel):
            return NotImplemented
        return (self.version == other.version and self.err_corr == other.err_corr
                and self.mask_pattern == other.mask_pattern
                and self.modules == other.modules and self.kinds == other.kinds)

    def __repr__(self):
        return 'SymbolModel(version={}, err_corr={}, mask_pattern={})'.format(
            self.version, self.err_corr, self.mask_pattern)

    def _set_function(self, row, col, dark):
        self.modules[row][col] = dark
        self.kinds[row][col] = CellKind.FUNCTION

    def setup_finder_pattern(self, row, col):
        '''
        7x7 finder (1:1:3:1:1) plus its one module light separator
        '''
        for r in range(-1, 8):
            if row + r <= -1 or self.size <= row + r:
                continue

            for c in range(-1, 8):
                if col + c <= -1 or self.size <= col + c:
                    continue
                self._set_function(row + r, col + c, (
                    (0 <= r <= 6 and c in {0, 6})
                    or (0 <= c <= 6 and r in {0, 6})
                    or (2 <= r <= 4 and 2 <= c <= 4)
                ))

    def setup_position_align_pattern(self):
        pos = constants.PATTERN_POSITION[self.version]
        for row in pos:
            for col in pos:
                if self.kinds[row][col] is not CellKind.DATA:
                    continue

                for r in range(-2, 3):
                    for c in range(-2, 3):
                        self._set_function(row + r, col + c, (
                            r == -2 or r == 2 or c == -2 or c == 2 or (r == 0 and c == 0)
                        ))

    def setup_timing_pattern(self):
        for r in range(8, self.size - 8):
            if self.kinds[r][6] is CellKind.DATA:
                self._set_function(r, 6, r % 2 == 0)

        for c in range(8, self.size - 8):
            if self.kinds[6][c] is CellKind.DATA:
                self._set_function(6, c, c % 2 == 0)

    def reserve_info_areas(self):
        first, second = format_positions(self.size)
        positions = first + second
        if self.version >= 7:
            top_right, bottom_left = version_positions(self.size)
            positions += top_right + bottom_left
        for row, col in positions:
            self.modules[row][col] = False
            self.kinds[row][col] = CellKind.RESERVED

        # fixed dark module
        self._set_function(self.size - 8, 8, True)

    def zigzag(self):
        '''
        Data cells in placement order: column pairs from the right edge,
        alternately upward and downward, skipping the vertical timing column
        '''
        upward = True
        for c in range(self.size - 1, 0, -2):
            if c <= 6:
                c -= 1
            rows = range(self.size - 1, -1, -1) if upward else range(self.size)
            for r in rows:
                for c_ in (c, c - 1):
                    if self.kinds[r][c_] is CellKind.DATA:
                        yield r, c_
            upward = not upward

    def place_codewords(self, codewords):
        '''
        Write codewords MSB first into the data cells; leftover
        remainder bits stay light
        '''
        length = len(codewords)
        index = 0
        for r, c in self.zigzag():
            byte_index, bit_index = divmod(index, 8)
            dark = False
            if byte_index < length:
                dark = ((codewords[byte_index] >> (7 - bit_index)) & 1) == 1
            self.modules[r][c] = dark
            index += 1
        if index < length * 8:
            raise ValueError('{} codewords do not fit version {}'.format(length, self.version))

    def read_codewords(self, count):
        codewords = []
        value = 0
        bits = 0
        for r, c in self.zigzag():
            value = (value << 1) | (1 if self.modules[r][c] else 0)
            bits += 1
            if bits == 8:
                codewords.append(value)
                if len(codewords) == count:
                    break
                value = bits = 0
        return codewords

    def masked(self, mask_pattern):
        '''
        Copy with the mask XORed over data cells only
        '''
        mask_func = util.mask_function(mask_pattern)
        model = self.copy()
        for r in range(self.size):
            row = model.modules[r]
            kinds = self.kinds[r]
            for c in range(self.size):
                if kinds[c] is CellKind.DATA and mask_func(r, c):
                    row[c] = not row[c]
        model.mask_pattern = mask_pattern
        return model

    def setup_type_info(self, err_corr, mask_pattern):
        '''
        Write BCH protected level and mask into both format copies
        '''
        data_BCH = util.BCH_code_generator((err_corr << 3) | mask_pattern)
        for positions in format_positions(self.size):
            for i, (r, c) in enumerate(positions):
                self._set_function(r, c, ((data_BCH >> i) & 1) == 1)
        self.err_corr = err_corr
        self.mask_pattern = mask_pattern

    def setup_version_info(self):
        if self.version < 7:
            return
        data_BCH = util.BCH_code_version_info(self.version)
        for positions in version_positions(self.size):
            for i, (r, c) in enumerate(positions):
                self._set_function(r, c, ((data_BCH >> i) & 1) == 1)

    def read_word(self, positions):
        word = 0
        for i, (r, c) in enumerate(positions):
            if self.modules[r][c]:
                word |= 1 << i
        return word

    def function_cells(self):
        return {(r, c) for r in range(self.size) for c in range(self.size)
                if self.kinds[r][c] is not CellKind.DATA}
