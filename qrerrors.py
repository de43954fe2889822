class QRError(Exception):
    '''Base error for every encode, render and decode operation.'''


class PayloadTooLarge(QRError, OverflowError):
    '''Payload does not fit a version 40 symbol at the requested level.'''


class InvalidDimensions(QRError, ValueError):
    '''Non-positive render width or a grid that is not a QR symbol size.'''


class InvalidLevel(QRError, ValueError):
    pass


class InvalidMode(QRError, ValueError):
    pass


class UnknownShape(QRError, ValueError):
    pass


class DecodeError(QRError):
    '''A symbol could not be turned back into its payload.'''


class SymbolNotFound(DecodeError):
    '''No QR symbol could be located in the pixel buffer.'''


class FormatInfoCorrupt(DecodeError):
    pass


class VersionInfoCorrupt(DecodeError):
    pass


class UnrecoverableData(DecodeError):
    pass


class MalformedBitStream(DecodeError):
    pass
