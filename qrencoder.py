import logging
from bisect import bisect_left

import qrconstants as constants
import qrutil as util
from qrerrors import InvalidLevel, InvalidMode, PayloadTooLarge
from qrsymbol import SymbolModel

logger = logging.getLogger(__name__)


def resolve_level(level):
    '''
    Accept 'L'/'M'/'Q'/'H' (any case) or a format code
    '''
    if isinstance(level, str):
        try:
            return constants.ERR_CORR_BY_NAME[level.strip().upper()]
        except KeyError:
            raise InvalidLevel('Unknown error correction level {!r}'.format(level))
    if level in constants.ERR_CORR_NAMES:
        return level
    raise InvalidLevel('Unknown error correction level {!r}'.format(level))


def resolve_mode(mode):
    if mode is None or mode in constants.MODE_INDICATORS:
        return mode
    if isinstance(mode, str) and mode.lower() in constants.MODE_BY_NAME:
        return constants.MODE_BY_NAME[mode.lower()]
    raise InvalidMode('Unknown mode {!r}'.format(mode))


class QREncoder:
    def __init__(self, version=None,
                 err_corr=constants.ERR_CORR_M,
                 mask_pattern=None):
        if version is not None and not constants.MIN_VERSION <= int(version) <= constants.MAX_VERSION:
            raise ValueError('Invalid version {}'.format(version))
        if mask_pattern is not None and not 0 <= mask_pattern <= 7:
            raise ValueError('Invalid mask pattern {}'.format(mask_pattern))
        self.version = version and int(version)
        self.err_corr = resolve_level(err_corr)
        self.mask_pattern = mask_pattern
        self.clear()

    def clear(self):
        '''
        Reset all data
        '''
        self.symbol = None
        self.data_cache = None
        self.data_list = []

    def add_data(self, data, mode=None):
        '''
        Add data to the symbol
        '''
        if isinstance(data, util.QRData):
            self.data_list.append(data)
        else:
            self.data_list.append(util.QRData(data, resolve_mode(mode)))
        self.data_cache = None

    def make(self, fit=True):
        '''
        Data analysis + data encodation + error correction coding +
        matrix construction + mask selection
        '''
        if fit or self.version is None:
            self.best_fit(start=self.version)
        template = self.place_data()
        if self.mask_pattern is None:
            self.symbol = self.best_mask_pattern(template)
        else:
            self.symbol = self.finish(template, self.mask_pattern)
        logger.debug('Encoded %d segment(s) as version %d level %s mask %d',
                     len(self.data_list), self.version,
                     constants.ERR_CORR_NAMES[self.err_corr], self.symbol.mask_pattern)
        return self.symbol

    def bits_needed(self, version):
        bits_number = util.bits_number_for_version(version)
        return sum(4 + bits_number[data.mode] + data.bit_length() for data in self.data_list)

    def best_fit(self, start=None):
        '''
        Finds the smallest version holding the data
        '''
        if start is None:
            start = 1
        if start < 1 or start > constants.MAX_VERSION:
            raise ValueError("Invalid version")

        bits_number = util.bits_number_for_version(start)
        bits_needed = self.bits_needed(start)
        limits = util.BIT_LIMIT_TABLE[self.err_corr]
        self.version = bisect_left(limits, bits_needed, start)

        if self.version > constants.MAX_VERSION:
            raise PayloadTooLarge('{} bits exceed version {} level {} capacity of {} bits'.format(
                bits_needed, constants.MAX_VERSION,
                constants.ERR_CORR_NAMES[self.err_corr], limits[constants.MAX_VERSION]))

        # A larger version may widen the character count field
        if bits_number != util.bits_number_for_version(self.version):
            self.best_fit(start=self.version)
        self.data_cache = None
        return self.version

    def place_data(self):
        '''
        Unmasked symbol: function patterns plus interleaved codewords
        '''
        if self.data_cache is None:
            self.data_cache = util.put_data(self.version, self.err_corr, self.data_list)
        symbol = SymbolModel.for_version(self.version)
        symbol.err_corr = self.err_corr
        symbol.place_codewords(self.data_cache)
        return symbol

    def finish(self, template, mask_pattern):
        symbol = template.masked(mask_pattern)
        symbol.setup_type_info(self.err_corr, mask_pattern)
        symbol.setup_version_info()
        return symbol

    def best_mask_pattern(self, template):
        '''
        Finished symbol with the lowest penalty, lowest mask index on ties
        '''
        candidates = [self.finish(template, i) for i in range(8)]
        penalties = [util.lost_calculator(c.modules) for c in candidates]
        best = min(range(8), key=lambda i: penalties[i])
        logger.debug('Mask penalties %s, chose %d', penalties, best)
        return candidates[best]


def encode(payload, level=constants.DEFAULT_LEVEL, mode=None, version=None, mask_pattern=None):
    '''
    Encode payload bytes (or text, as UTF-8) into a finished SymbolModel
    '''
    encoder = QREncoder(version=version, err_corr=level, mask_pattern=mask_pattern)
    encoder.add_data(payload, mode)
    return encoder.make()
