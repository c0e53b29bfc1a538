from flask import jsonify


class QuizError(Exception):
    """Base class for errors surfaced to the caller as-is."""
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'type': self.__class__.__name__}


class NotFound(QuizError):
    status_code = 404


class PermissionDenied(QuizError):
    status_code = 403


class ValidationError(QuizError):
    status_code = 400


class AlreadyAnswered(QuizError):
    status_code = 409


class InvalidState(QuizError):
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(QuizError)
    def handle_quiz_error(exc):
        app.logger.info(f"[error] {exc.__class__.__name__}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code
