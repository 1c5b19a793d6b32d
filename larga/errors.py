"""
Service errors and their JSON HTTP mapping.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound


class LargaError(Exception):
    """Base error for failures the API reports to the caller."""

    status_code = 500
    public_message = 'Unexpected server error'


class SupabaseNotConfigured(LargaError):
    status_code = 503
    public_message = 'Supabase is not configured on server'


class SupabaseRequestError(LargaError):
    """A Supabase call failed; the original exception is chained."""

    status_code = 500

    def __init__(self, public_message, *args):
        super().__init__(public_message, *args)
        self.public_message = public_message


def register_error_handlers(app):
    """Install JSON error handlers on the Flask app."""

    @app.errorhandler(LargaError)
    def handle_larga_error(error):
        return jsonify({'error': error.public_message}), error.status_code

    @app.errorhandler(MethodNotAllowed)
    def handle_method_not_allowed(error):
        response = jsonify({'success': False, 'error': 'Method not allowed'})
        response.status_code = 405
        if error.valid_methods:
            response.headers['Allow'] = ', '.join(error.valid_methods)
        return response

    @app.errorhandler(NotFound)
    def handle_not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logging.error(f"[Server] Unhandled error: {error}", exc_info=True)
        return jsonify({'error': 'Unexpected server error'}), 500
