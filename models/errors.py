class GameError(Exception):
    """Base for every failure the game reports back to a caller."""
    status_code = 400

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__.rstrip(".")
        super().__init__(self.message)


class NotFound(GameError):
    """Not found."""
    status_code = 404


class PlayerNotFound(NotFound):
    """User not found."""


class CrimeNotFound(NotFound):
    """Crime not found."""


class ItemNotFound(NotFound):
    """Item not found."""


class InvalidState(GameError):
    """Stored game data is corrupt."""
    status_code = 500


class PersistenceConflict(GameError):
    """Player record was modified concurrently, try again."""
    status_code = 409


class PersistenceUnavailable(GameError):
    """Storage is unavailable, try again later."""
    status_code = 503


class InsufficientFunds(GameError):
    """Not enough money."""


class UsernameTaken(GameError):
    """Username taken."""


class InvalidCredentials(GameError):
    """Invalid username or password."""
    status_code = 401


class AdminRequired(GameError):
    """Admin access required."""
    status_code = 403


class LoginRequired(GameError):
    """Login required."""
    status_code = 401
