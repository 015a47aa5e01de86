from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Skyjo API'})


def register_error_handlers(flask_app):
    """Answer every error with a JSON body instead of an HTML page."""

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description or error.name}), error.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error):
        current_app.logger.exception(f"[http-error] {error.__class__.__name__}: {error}")
        return jsonify({'error': 'An unknown error occurred!'}), 500
