
import qrconstants as constants
import galois
from qrerrors import InvalidMode, PayloadTooLarge


class RSBlock:

    def __init__(self, total_count, data_count):
        self.total_count = total_count
        self.data_count = data_count

    @property
    def ec_count(self):
        return self.total_count - self.data_count

    def __repr__(self):
        return f"RSBlock({self.total_count}, {self.data_count})"


# Column of each level in the per-version tables
RS_BLOCK_OFFSET = {
    constants.ERR_CORR_L: 0,
    constants.ERR_CORR_M: 1,
    constants.ERR_CORR_Q: 2,
    constants.ERR_CORR_H: 3,
}


def rs_blocks(version, err_corr):
    '''
    Reed-Solomon blocks for a version/level, short blocks first.
    Long blocks carry one extra data codeword.
    '''
    if err_corr not in RS_BLOCK_OFFSET:
        raise ValueError(
            "bad rs block @ version: {} / error_correction: {}".format(version, err_corr))
    offset = RS_BLOCK_OFFSET[err_corr]
    block_cnt = constants.RS_BLOCK_COUNT_TABLE[version - 1][offset]
    ec_total = constants.EC_CODEWORDS_TABLE[version - 1][offset]
    total = constants.TOTAL_CODEWORDS[version]

    ec_per_block = ec_total // block_cnt
    short_total = total // block_cnt
    long_cnt = total % block_cnt

    blocks = []
    for i in range(block_cnt):
        block_total = short_total + (1 if i >= block_cnt - long_cnt else 0)
        blocks.append(RSBlock(block_total, block_total - ec_per_block))

    return blocks


# Precompute bit count limits, indexed by error correction level and code size
_data_count = lambda block: block.data_count
BIT_LIMIT_TABLE = [
    [0] + [8 * sum(map(_data_count, rs_blocks(version, err_corr)))
           for version in range(1, constants.MAX_VERSION + 1)]
    for err_corr in range(4)
]


def bits_number_for_version(version):
    if version < 10:
        return constants.MODE_SIZE_SMALL
    elif version < 27:
        return constants.MODE_SIZE_MEDIUM
    else:
        return constants.MODE_SIZE_LARGE


def segment_bit_length(mode, count):
    if mode == constants.NUMERIC_MODE:
        full, rest = divmod(count, 3)
        return full * 10 + (constants.NUMBER_LENGTH[rest] if rest else 0)
    elif mode == constants.ALPHANUMERIC_MODE:
        return (count // 2) * 11 + (count % 2) * 6
    return count * 8


def byte_capacity(version, err_corr):
    '''
    Largest byte mode payload a version/level holds.
    '''
    header = 4 + bits_number_for_version(version)[constants.EIGHT_BIT_BYTE_MODE]
    return (BIT_LIMIT_TABLE[err_corr][version] - header) // 8


# QRcode valid data type
class QRData:
    '''
    A payload segment and the mode it is written in
    '''
    def __init__(self, data, mode=None):
        if not isinstance(data, bytes):
            data = data.encode('utf-8')
        self.data = data

        if mode is None:
            self.mode = self.best_mode()
        else:
            self.mode = mode
            if mode not in constants.MODE_INDICATORS:
                raise InvalidMode("Invalid mode {}".format(mode))
            if mode < self.best_mode():
                raise InvalidMode("Data cannot be represented in mode {}".format(mode))

    def __len__(self):
        return len(self.data)

    def bit_length(self):
        '''
        Bits written by write(), header excluded
        '''
        return segment_bit_length(self.mode, len(self.data))

    def write(self, buffer):
        if self.mode == constants.NUMERIC_MODE:
            for i in range(0, len(self.data), 3):
                chars = self.data[i:i + 3]
                bit_length = constants.NUMBER_LENGTH[len(chars)]
                buffer.put(int(chars), bit_length)
        elif self.mode == constants.ALPHANUMERIC_MODE:
            for i in range(0, len(self.data), 2):
                chars = self.data[i:i + 2]
                if len(chars) > 1:
                    buffer.put(constants.ALPHANUMERIC_NUM.find(chars[0]) * 45
                               + constants.ALPHANUMERIC_NUM.find(chars[1]), 11)
                else:
                    buffer.put(constants.ALPHANUMERIC_NUM.find(chars[0]), 6)
        else:
            for c in self.data:
                buffer.put(c, 8)

    def __repr__(self):
        return repr(self.data)

    def best_mode(self):
        '''
        Calculate the best mode for data
        '''
        data = self.data
        if data.isdigit():
            return constants.NUMERIC_MODE
        elif constants.RE_ALPHANUMERIC_NUM.match(data):
            return constants.ALPHANUMERIC_MODE
        else:
            return constants.EIGHT_BIT_BYTE_MODE


class BitBuffer:
    '''
    Library to store data by bit
    '''
    def __init__(self):
        self.buffer = []
        self.length = 0

    def __repr__(self):
        return '.'.join([str(n) for n in self.buffer])

    def __len__(self):
        return self.length

    def set(self, bit=1):
        '''
        Sets the back elements of the bitarray
        '''
        length = self.length
        buf_index = length // 8
        position = length % 8
        if len(self.buffer) <= buf_index:
            self.buffer.append(0)
        if bit:
            self.buffer[buf_index] = self.buffer[buf_index] | 1 << (7 - position)
        self.length += 1

    def put(self, data, length):
        '''
        put num by bit
        '''
        for i in range(length):
            self.set(((data >> (length - i - 1)) & 1) == 1)


class BitReader:
    '''
    Reads big-endian bit fields back out of a codeword sequence
    '''
    def __init__(self, codewords):
        self.codewords = bytes(codewords)
        self.position = 0

    def __len__(self):
        return len(self.codewords) * 8

    def remaining(self):
        return len(self) - self.position

    def read(self, length):
        if length > self.remaining():
            raise EOFError(f"{length} bits requested, {self.remaining()} left")
        value = 0
        for _ in range(length):
            byte = self.codewords[self.position // 8]
            value = (value << 1) | ((byte >> (7 - self.position % 8)) & 1)
            self.position += 1
        return value


def copy_mat(x):
    return [row[:] for row in x]


def BCH_digit(data):
    '''
    Count Bits in binary representation of data for error correction
    '''
    digit = 0
    while data != 0:
        digit += 1
        data >>= 1
    return digit


def BCH_code_generator(data):
    '''
    Error correction bit calculation According to Annex C
    '''
    d = data << 10  # raise power to the 10-th
    while BCH_digit(d) - BCH_digit(constants.G15) >= 0:  # divide by G(x)
        d ^= (constants.G15 << (BCH_digit(d) - BCH_digit(constants.G15)))
    return ((data << 10) | d) ^ constants.G15_MASK  # XOR with mask


def BCH_code_version_info(data):
    '''
    Error correction Version Information According to Annex D
    '''
    d = data << 12  # raise power to (18-6)-th
    while BCH_digit(d) - BCH_digit(constants.G18) >= 0:
        d ^= (constants.G18 << (BCH_digit(d) - BCH_digit(constants.G18)))
    return (data << 12) | d


# Every valid 15-bit format word keyed by its 5-bit (level, mask) value
FORMAT_CODEWORDS = {data: BCH_code_generator(data) for data in range(32)}
VERSION_CODEWORDS = {
    version: BCH_code_version_info(version)
    for version in range(7, constants.MAX_VERSION + 1)
}


def _nearest(word, codewords, max_distance):
    best = None
    best_distance = max_distance + 1
    for value, codeword in codewords.items():
        distance = bin(word ^ codeword).count('1')
        if distance < best_distance:
            best, best_distance = value, distance
    if best is None:
        return None
    return best, best_distance


def decode_format_bits(word):
    '''
    Nearest (err_corr, mask_pattern, distance) within 3 bit errors, or None
    '''
    found = _nearest(word, FORMAT_CODEWORDS, 3)
    if found is None:
        return None
    data, distance = found
    return data >> 3, data & 7, distance


def decode_version_bits(word):
    '''
    Nearest (version, distance) within 3 bit errors, or None
    '''
    return _nearest(word, VERSION_CODEWORDS, 3)


def put_data(version, err_corr, datalist):
    '''
    Data encodation process
    '''
    buffer = BitBuffer()
    for data in datalist:
        buffer.put(data.mode, 4)
        try:
            buffer.put(len(data), bits_number_for_version(version)[data.mode])
        except KeyError:
            raise InvalidMode('Invalid mode {}'.format(data.mode))

        data.write(buffer)

    # Calculate the maximum bits
    blocks = rs_blocks(version, err_corr=err_corr)
    max_bit = sum(b.data_count * 8 for b in blocks)
    if len(buffer) > max_bit:
        raise PayloadTooLarge(
            'Data overflow for version {}: {} > {} bits'.format(version, len(buffer), max_bit))

    # Terminate
    for _ in range(min(max_bit - len(buffer), 4)):
        buffer.set(False)

    # Rearrangement
    if len(buffer) % 8:  # rearrange if there is remaining bit
        for _ in range(8 - len(buffer) % 8):
            buffer.set(False)

    # Divide into 8-bit codewords, adding padding bits
    padding_bytes = (max_bit - len(buffer)) // 8

    for i in range(padding_bytes):
        if i % 2:
            buffer.put(constants.PAD1, 8)
        else:
            buffer.put(constants.PAD0, 8)

    return put_bytes(buffer, blocks)


def put_bytes(buffer, rs_blocks):
    '''
    Split data codewords into blocks, append their error correction
    codewords and interleave everything column by column
    '''
    offset = 0

    data_encode = []
    err_encode = []

    for block in rs_blocks:
        data = [0xFF & b for b in buffer.buffer[offset:offset + block.data_count]]
        offset += block.data_count
        data_encode.append(data)
        err_encode.append(galois.rs_encode(data, block.ec_count))

    return interleave(data_encode) + interleave(err_encode)


def interleave(groups):
    result = []
    for i in range(max(len(g) for g in groups)):
        for group in groups:
            if i < len(group):
                result.append(group[i])
    return result


def deinterleave(codewords, rs_blocks):
    '''
    Inverse of put_bytes: one full codeword list (data + EC) per block
    '''
    data_encode = [[] for _ in rs_blocks]
    err_encode = [[] for _ in rs_blocks]
    index = 0

    for i in range(max(b.data_count for b in rs_blocks)):
        for r, block in enumerate(rs_blocks):
            if i < block.data_count:
                data_encode[r].append(codewords[index])
                index += 1

    for i in range(max(b.ec_count for b in rs_blocks)):
        for r, block in enumerate(rs_blocks):
            if i < block.ec_count:
                err_encode[r].append(codewords[index])
                index += 1

    return [d + e for d, e in zip(data_encode, err_encode)]


def mask_function(mask_pattern):
    '''
    Give the mask funtion for given pattern 000-111
    According to Table 23
    '''
    if mask_pattern == 0:
        return lambda i, j: (i + j) % 2 == 0
    elif mask_pattern == 1:
        return lambda i, j: i % 2 == 0
    elif mask_pattern == 2:
        return lambda i, j: j % 3 == 0
    elif mask_pattern == 3:
        return lambda i, j: (i + j) % 3 == 0
    elif mask_pattern == 4:
        return lambda i, j: (i // 2 + j // 3) % 2 == 0
    elif mask_pattern == 5:
        return lambda i, j: (i * j) % 2 + (i * j) % 3 == 0
    elif mask_pattern == 6:
        return lambda i, j: ((i * j) % 2 + (i * j) % 3) % 2 == 0
    elif mask_pattern == 7:
        return lambda i, j: ((i + j) % 2 + (i * j) % 3) % 2 == 0
    else:
        raise ValueError('Invalid mask pattern {}'.format(mask_pattern))


def lost_calculator(modules):
    '''
    Scoring penalty points for each orrcurence of defined features
    See in 8.8.2 and Table 24
    '''
    modules_cnt = len(modules)

    return (lost_count_1(modules, modules_cnt) + lost_count_2(modules, modules_cnt)
            + lost_count_3(modules, modules_cnt) + lost_count_4(modules, modules_cnt))


def _lines(modules, modules_cnt):
    for r in range(modules_cnt):
        yield modules[r]
    for c in range(modules_cnt):
        yield [modules[r][c] for r in range(modules_cnt)]


def lost_count_1(modules, modules_cnt):
    '''
    Adjacent modules in row/column in same color
    No. of modules = (5 + i) -> Points = N1 + i
    '''
    points = 0

    for line in _lines(modules, modules_cnt):
        previous_color = line[0]
        i = 1
        for color in line[1:]:
            if color == previous_color:
                i += 1
            else:
                if i >= 5:
                    points += i + constants.MASK_EVAL_N1 - 5
                i = 1
                previous_color = color
        if i >= 5:
            points += i + constants.MASK_EVAL_N1 - 5

    return points


def lost_count_2(modules, modules_cnt):
    '''
    Block of modules in same color
    Every 2*2 block -> points = N2
    '''
    points = 0

    for r in range(modules_cnt - 1):
        row = modules[r]
        next_row = modules[r + 1]
        for c in range(modules_cnt - 1):
            color = row[c]
            if color == row[c + 1] == next_row[c] == next_row[c + 1]:
                points += constants.MASK_EVAL_N2
    return points


_FINDER_LIKE = (
    (True, False, True, True, True, False, True, False, False, False, False),
    (False, False, False, False, True, False, True, True, True, False, True),
)


def lost_count_3(modules, modules_cnt):
    '''
    1:1:3:1:1 Ratio Detection
    pattern1: 10111010000
    pattern2: 00001011101
    '''
    points = 0

    for line in _lines(modules, modules_cnt):
        line = tuple(bool(m) for m in line)
        for c in range(modules_cnt - 10):
            if line[c:c + 11] in _FINDER_LIKE:
                points += constants.MASK_EVAL_N3

    return points


def lost_count_4(modules, modules_cnt):
    '''
    Proportion of dark in the entire mat
    50 +- (5 * k) % to 50 +- (5* (k+1)) % -> points = N4 * k
    '''
    dark_cnt = sum(map(sum, modules))
    percent = dark_cnt * 100 / modules_cnt / modules_cnt
    return constants.MASK_EVAL_N4 * (int(abs(percent - 50)) // 5)
