"""Domain errors raised by game services and rendered as JSON by the app."""


class ScoreboardError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(ScoreboardError):
    status_code = 400


class PermissionDenied(ScoreboardError):
    status_code = 403


class GameNotFound(ScoreboardError):
    status_code = 404


class GameStateError(ScoreboardError):
    status_code = 409


class Conflict(ScoreboardError):
    status_code = 409
