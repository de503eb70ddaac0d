"""Domain errors raised by services and mapped to HTTP responses by the routers."""


class InvalidTransitionError(Exception):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, message: str, current_state: str = None):
        super().__init__(message)
        self.message = message
        self.current_state = current_state
