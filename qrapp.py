import base64

from flask import Flask, Response, jsonify, request

import qrconstants as constants
import qrdecoder
import qrencoder
import qrrender
import qrsampler
from qrerrors import (
    DecodeError, InvalidDimensions, PayloadTooLarge, QRError, SymbolNotFound,
)

DEFAULT_CONFIG = {
    'QR_WIDTH': constants.DEFAULT_WIDTH,
    'QR_SHAPE': constants.DEFAULT_SHAPE,
    'QR_LEVEL': constants.DEFAULT_LEVEL,
    'QR_BORDER': constants.DEFAULT_BORDER,
    'QR_MAX_WIDTH': constants.MAX_WIDTH,
}


def error_status(error):
    if isinstance(error, PayloadTooLarge):
        return 413
    if isinstance(error, SymbolNotFound):
        return 404
    if isinstance(error, DecodeError):
        return 422
    return 400


def payload_field(name):
    '''
    Form/query field if present, raw request body otherwise
    '''
    value = request.values.get(name)
    if value is not None:
        return value.encode('utf-8')
    return request.get_data()


def width_field(app):
    raw = request.values.get('width')
    if raw is None:
        return app.config['QR_WIDTH']
    try:
        width = int(raw)
    except ValueError:
        raise InvalidDimensions('Width must be an integer, got {!r}'.format(raw))
    if width > app.config['QR_MAX_WIDTH']:
        raise InvalidDimensions('Width should be at most {}'.format(app.config['QR_MAX_WIDTH']))
    return width


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_CONFIG)
    app.config.from_prefixed_env()
    if config:
        app.config.from_mapping(config)

    @app.errorhandler(QRError)
    def handle_qr_error(error):
        status = error_status(error)
        app.logger.info('%s: %s', type(error).__name__, error)
        return jsonify(error=type(error).__name__, message=str(error)), status

    @app.route('/encode', methods=['POST', 'GET'])
    def encode():
        payload = payload_field('data')
        symbol = qrencoder.encode(payload, request.values.get('level', app.config['QR_LEVEL']))
        pixels = qrrender.render(symbol, width_field(app),
                                 request.values.get('shape', app.config['QR_SHAPE']),
                                 border=app.config['QR_BORDER'])
        app.logger.debug('Encoded %d bytes as %r', len(payload), symbol)
        return Response(qrrender.to_png(pixels), mimetype='image/png')

    @app.route('/decode', methods=['POST'])
    def decode():
        upload = request.files.get('image')
        data = upload.read() if upload is not None else request.get_data()
        try:
            pixels = qrsampler.read_image(data)
        except (OSError, ValueError, SyntaxError) as e:
            raise SymbolNotFound('Unable to open image: {}'.format(e))

        decoder = qrdecoder.QRDecoder()
        payload = decoder.decode(qrsampler.sample_grid(pixels))
        try:
            text, encoding = payload.decode('utf-8'), 'utf-8'
        except UnicodeDecodeError:
            text, encoding = base64.b64encode(payload).decode('ascii'), 'base64'

        return jsonify(
            payload=text,
            encoding=encoding,
            version=decoder.version,
            level=constants.ERR_CORR_NAMES[decoder.err_corr],
            mask=decoder.mask_pattern,
        )

    return app


if __name__ == '__main__':
    create_app().run(debug=True, port=8081)
