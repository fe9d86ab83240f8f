"""
Common exception definitions
"""


class ConfigurationError(Exception):
    """
    A required configuration value is missing or invalid.

    Raised at startup, before any matchmaking cycle is scheduled.
    """
    def __init__(self, key, message, *args, **kwargs):
        super().__init__(f"{key}: {message}", *args, **kwargs)
        self.key = key
        self.message = message


class RosterError(Exception):
    """
    The participant roster could not be loaded.
    """
    def __init__(self, path, message, *args, **kwargs):
        super().__init__(f"{path}: {message}", *args, **kwargs)
        self.path = path
        self.message = message
