import re

# Error correction levels, valued by their two-bit format information code
ERR_CORR_L = 1
ERR_CORR_M = 0
ERR_CORR_Q = 3
ERR_CORR_H = 2

ERR_CORR_BY_NAME = {
    'L': ERR_CORR_L,
    'M': ERR_CORR_M,
    'Q': ERR_CORR_Q,
    'H': ERR_CORR_H,
}
ERR_CORR_NAMES = {value: name for name, value in ERR_CORR_BY_NAME.items()}

# Mode indicators (4 bits)
TERMINATOR = 0
NUMERIC_MODE = 1
ALPHANUMERIC_MODE = 2
EIGHT_BIT_BYTE_MODE = 4
KANJI_MODE = 8

MODE_INDICATORS = (NUMERIC_MODE, ALPHANUMERIC_MODE, EIGHT_BIT_BYTE_MODE)
MODE_BY_NAME = {
    'numeric': NUMERIC_MODE,
    'alphanumeric': ALPHANUMERIC_MODE,
    'byte': EIGHT_BIT_BYTE_MODE,
}

# Character count indicator widths for versions 1-9, 10-26 and 27-40
MODE_SIZE_SMALL = {
    NUMERIC_MODE: 10,
    ALPHANUMERIC_MODE: 9,
    EIGHT_BIT_BYTE_MODE: 8,
    KANJI_MODE: 8,
}
MODE_SIZE_MEDIUM = {
    NUMERIC_MODE: 12,
    ALPHANUMERIC_MODE: 11,
    EIGHT_BIT_BYTE_MODE: 16,
    KANJI_MODE: 10,
}
MODE_SIZE_LARGE = {
    NUMERIC_MODE: 14,
    ALPHANUMERIC_MODE: 13,
    EIGHT_BIT_BYTE_MODE: 16,
    KANJI_MODE: 12,
}

# Bits used by a numeric group of 1, 2 or 3 digits
NUMBER_LENGTH = {3: 10, 2: 7, 1: 4}

ALPHANUMERIC_NUM = b'0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:'
RE_ALPHANUMERIC_NUM = re.compile(rb'^[' + re.escape(ALPHANUMERIC_NUM) + rb']+\Z')

# Pad codewords 11101100 and 00010001
PAD0 = 0xEC
PAD1 = 0x11

# BCH generators for format (Annex C) and version (Annex D) information
G15 = (1 << 10) | (1 << 8) | (1 << 5) | (1 << 4) | (1 << 2) | (1 << 1) | 1
G18 = (1 << 12) | (1 << 11) | (1 << 10) | (1 << 9) | (1 << 8) | (1 << 5) | (1 << 2) | 1
G15_MASK = (1 << 14) | (1 << 12) | (1 << 10) | (1 << 4) | (1 << 1)

# Primitive polynomial x^8 + x^4 + x^3 + x^2 + 1
GF_PRIMITIVE = 0x11D

MIN_VERSION = 1
MAX_VERSION = 40

# Total error correction codewords per version, columns ordered L, M, Q, H
EC_CODEWORDS_TABLE = (
    (7, 10, 13, 17), (10, 16, 22, 28), (15, 26, 36, 44), (20, 36, 52, 64),
    (26, 48, 72, 88), (36, 64, 96, 112), (40, 72, 108, 130), (48, 88, 132, 156),
    (60, 110, 160, 192), (72, 130, 192, 224), (80, 150, 224, 264), (96, 176, 260, 308),
    (104, 198, 288, 352), (120, 216, 320, 384), (132, 240, 360, 432), (144, 280, 408, 480),
    (168, 308, 448, 532), (180, 338, 504, 588), (196, 364, 546, 650), (224, 416, 600, 700),
    (224, 442, 644, 750), (252, 476, 690, 816), (270, 504, 750, 900), (300, 560, 810, 960),
    (312, 588, 870, 1050), (336, 644, 952, 1110), (360, 700, 1020, 1200), (390, 728, 1050, 1260),
    (420, 784, 1140, 1350), (450, 812, 1200, 1440), (480, 868, 1290, 1530), (510, 924, 1350, 1620),
    (540, 980, 1440, 1710), (570, 1036, 1530, 1800), (570, 1064, 1590, 1890), (600, 1120, 1680, 1980),
    (630, 1204, 1770, 2100), (660, 1260, 1860, 2220), (720, 1316, 1950, 2310), (750, 1372, 2040, 2430),
)

# Number of Reed-Solomon blocks per version, columns ordered L, M, Q, H
RS_BLOCK_COUNT_TABLE = (
    (1, 1, 1, 1), (1, 1, 1, 1), (1, 1, 2, 2), (1, 2, 2, 4), (1, 2, 4, 4),
    (2, 4, 4, 4), (2, 4, 6, 5), (2, 4, 6, 6), (2, 5, 8, 8), (4, 5, 8, 8),
    (4, 5, 8, 11), (4, 8, 10, 11), (4, 9, 12, 16), (4, 9, 16, 16), (6, 10, 12, 18),
    (6, 10, 17, 16), (6, 11, 16, 19), (6, 13, 18, 21), (7, 14, 21, 25), (8, 16, 20, 25),
    (8, 17, 23, 25), (9, 17, 23, 34), (9, 18, 25, 30), (10, 20, 27, 32), (12, 21, 29, 35),
    (12, 23, 34, 37), (12, 25, 34, 40), (13, 26, 35, 42), (14, 28, 38, 45), (15, 29, 40, 48),
    (16, 31, 43, 51), (17, 33, 45, 54), (18, 35, 48, 57), (19, 37, 51, 60), (19, 38, 53, 63),
    (20, 40, 56, 66), (21, 43, 59, 70), (22, 45, 62, 74), (24, 47, 65, 77), (25, 49, 68, 81),
)


def _raw_data_modules(version):
    '''
    Modules left for codewords once every function pattern is placed
    '''
    result = (16 * version + 128) * version + 64
    if version >= 2:
        align_cnt = version // 7 + 2
        result -= (25 * align_cnt - 10) * align_cnt - 55
        if version >= 7:
            result -= 36
    return result


def _alignment_positions(version):
    if version == 1:
        return []
    align_cnt = version // 7 + 2
    size = version * 4 + 17
    if version == 32:
        step = 26
    else:
        step = (version * 4 + align_cnt * 2 + 1) // (align_cnt * 2 - 2) * 2
    return [6] + sorted(size - 7 - i * step for i in range(align_cnt - 1))


# Indexed by version, entry 0 unused
TOTAL_CODEWORDS = [0] + [_raw_data_modules(v) // 8 for v in range(1, MAX_VERSION + 1)]
PATTERN_POSITION = [[]] + [_alignment_positions(v) for v in range(1, MAX_VERSION + 1)]

# Penalty weights for mask evaluation (Table 11)
MASK_EVAL_N1 = 3
MASK_EVAL_N2 = 3
MASK_EVAL_N3 = 40
MASK_EVAL_N4 = 10

# Rendering defaults
DEFAULT_WIDTH = 300
DEFAULT_SHAPE = 'square'
DEFAULT_BORDER = 4
DEFAULT_LEVEL = 'M'
MAX_WIDTH = 4096
