'''
GF(256) arithmetic and the Reed-Solomon code used by QR symbols.

Elements are ints 0-255. Polynomials passed to rs_encode/rs_decode are lists
of codewords, highest degree first, exactly as they sit in a symbol.
'''
import logging

import qrconstants as constants
from qrerrors import QRError

logger = logging.getLogger(__name__)


class Uncorrectable(QRError):
    '''More errors in a block than its error correction codewords can fix.'''


exponents = [0] * 256
log = [0] * 256

_x = 1
for _i in range(255):
    exponents[_i] = _x
    log[_x] = _i
    _x <<= 1
    if _x & 0x100:
        _x ^= constants.GF_PRIMITIVE
exponents[255] = exponents[0]
del _x, _i


def _log(n):
    if n < 1:
        raise ValueError(f"_log({n})")
    return log[n]


def _exp(n):
    return exponents[n % 255]


def gf_mul(a, b):
    if a == 0 or b == 0:
        return 0
    return exponents[(log[a] + log[b]) % 255]


def gf_div(a, b):
    if b == 0:
        raise ZeroDivisionError("GF(256) division by zero")
    if a == 0:
        return 0
    return exponents[(log[a] - log[b]) % 255]


def gf_inverse(a):
    if a == 0:
        raise ZeroDivisionError("0 has no inverse in GF(256)")
    return exponents[(255 - log[a]) % 255]


class Polynomial:
    '''
    Polynomial over GF(256), coefficients highest degree first.
    Leading zeros are dropped; shift appends that many zero terms,
    i.e. multiplies by x**shift.
    '''

    def __init__(self, num, shift=0):
        offset = 0
        while offset < len(num) and num[offset] == 0:
            offset += 1
        self.num = list(num[offset:]) + [0] * shift

    def __getitem__(self, index):
        return self.num[index]

    def __iter__(self):
        return iter(self.num)

    def __len__(self):
        return len(self.num)

    def __eq__(self, other):
        return isinstance(other, Polynomial) and self.num == other.num

    def __repr__(self):
        return f"Polynomial({self.num})"

    @property
    def degree(self):
        return len(self.num) - 1

    def __mul__(self, other):
        num = [0] * (len(self) + len(other) - 1)

        for i, item in enumerate(self):
            for j, other_item in enumerate(other):
                num[i + j] ^= gf_mul(item, other_item)

        return Polynomial(num)

    def __mod__(self, other):
        num = list(self.num)
        steps = len(num) - len(other) + 1
        if steps <= 0:
            return Polynomial(num)

        lead = _log(other[0])
        for i in range(steps):
            coef = num[i]
            if coef == 0:
                continue
            ratio = _log(coef) - lead
            for j, other_item in enumerate(other):
                if other_item:
                    num[i + j] ^= _exp(_log(other_item) + ratio)

        return Polynomial(num[steps:])

    def evaluate(self, x):
        result = 0
        for coef in self.num:
            result = gf_mul(result, x) ^ coef
        return result


_generator_cache = {}


def generator_polynomial(n):
    '''
    Degree n generator (x - a^0)(x - a^1)...(x - a^(n-1)).
    '''
    if n < 0:
        raise ValueError(f"Negative generator degree {n}")
    if n not in _generator_cache:
        poly = Polynomial([1])
        for i in range(n):
            poly = poly * Polynomial([1, _exp(i)])
        _generator_cache[n] = poly
    return _generator_cache[n]


def rs_encode(data, ec_count):
    '''
    Error correction codewords for data: the remainder of
    data * x^ec_count divided by the generator.
    '''
    if ec_count == 0:
        return []
    generator = generator_polynomial(ec_count)
    remainder = Polynomial(data, ec_count) % generator
    # remainder drops leading zeros, pad it back to ec_count terms
    return [0] * (ec_count - len(remainder)) + list(remainder)


def _syndromes(codewords, ec_count):
    syndromes = [0] * ec_count
    for i in range(ec_count):
        x = _exp(i)
        s = 0
        for c in codewords:
            s = gf_mul(s, x) ^ c
        syndromes[i] = s
    return syndromes


def _poly_eval_low(poly, x):
    '''Evaluate a polynomial stored lowest degree first.'''
    result = 0
    for coef in reversed(poly):
        result = gf_mul(result, x) ^ coef
    return result


def _berlekamp_massey(syndromes):
    '''
    Error locator polynomial, lowest degree first, and its degree.
    '''
    n = len(syndromes)
    sigma = [0] * (n + 1)
    prev = [0] * (n + 1)
    sigma[0] = prev[0] = 1
    length = 0
    shift = 1
    prev_discrepancy = 1

    for k in range(n):
        discrepancy = syndromes[k]
        for i in range(1, length + 1):
            discrepancy ^= gf_mul(sigma[i], syndromes[k - i])

        if discrepancy == 0:
            shift += 1
            continue

        saved = list(sigma)
        coef = gf_div(discrepancy, prev_discrepancy)
        for i in range(n + 1 - shift):
            sigma[i + shift] ^= gf_mul(coef, prev[i])

        if 2 * length <= k:
            length = k + 1 - length
            prev = saved
            prev_discrepancy = discrepancy
            shift = 1
        else:
            shift += 1

    return sigma[:length + 1], length


def _chien_search(sigma, count):
    '''
    Indexes into the codeword list whose locator X^-1 is a root of sigma.
    '''
    positions = []
    for index in range(count):
        power = count - 1 - index
        if _poly_eval_low(sigma, _exp(255 - power)) == 0:
            positions.append(index)
    return positions


def _forney(syndromes, sigma, positions, count):
    ec_count = len(syndromes)
    omega = [0] * ec_count
    for i, sig in enumerate(sigma):
        if sig == 0:
            continue
        for j in range(ec_count - i):
            omega[i + j] ^= gf_mul(sig, syndromes[j])

    derivative = [sigma[i] if i % 2 else 0 for i in range(1, len(sigma))]

    magnitudes = []
    for index in positions:
        power = count - 1 - index
        x = _exp(power)
        x_inv = _exp(255 - power)
        denominator = _poly_eval_low(derivative, x_inv)
        if denominator == 0:
            raise Uncorrectable(f"Zero locator derivative at codeword {index}")
        magnitudes.append(gf_mul(x, gf_div(_poly_eval_low(omega, x_inv), denominator)))
    return magnitudes


def rs_decode(codewords, ec_count):
    '''
    Correct up to ec_count // 2 codeword errors and return the whole block,
    data followed by error correction codewords. Raises Uncorrectable when
    the errors cannot be located.
    '''
    codewords = list(codewords)
    count = len(codewords)
    if ec_count > count:
        raise ValueError(f"{ec_count} EC codewords in a block of {count}")
    if count > 255:
        raise ValueError(f"Block of {count} codewords exceeds GF(256) code length")

    syndromes = _syndromes(codewords, ec_count)
    if not any(syndromes):
        return codewords

    sigma, errors = _berlekamp_massey(syndromes)
    if errors > ec_count // 2:
        raise Uncorrectable(f"{errors} errors exceed capacity {ec_count // 2}")

    positions = _chien_search(sigma, count)
    if len(positions) != errors:
        raise Uncorrectable(
            f"Located {len(positions)} of {errors} errors inside {count} codewords")

    for index, magnitude in zip(positions, _forney(syndromes, sigma, positions, count)):
        codewords[index] ^= magnitude

    if any(_syndromes(codewords, ec_count)):
        raise Uncorrectable("Nonzero syndromes after correction")

    logger.debug("Corrected %d codewords at %s", errors, positions)
    return codewords
