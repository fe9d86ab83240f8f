import re

CASE_PATTERN = re.compile(r"(?<!^)(?=[A-Z])")


class Service():
    """
    All services should inherit from this class.

    Services are long lived objects which manage some server task. Each one is
    created once per `ServerInstance` and handed to whoever needs it.
    """

    @property
    def service_name(self) -> str:
        """The name the service is registered under, e.g. `roster_service`"""
        return snake_case(self.__class__.__name__)

    async def initialize(self) -> None:
        """
        Called once while the server is starting.
        """
        pass  # pragma: no cover

    async def shutdown(self) -> None:
        """
        Called once after the server received the shutdown signal.
        """
        pass  # pragma: no cover


def snake_case(string: str) -> str:
    """
    Copied from:
    https://stackoverflow.com/questions/1175208/elegant-python-function-to-convert-camelcase-to-snake-case
    """
    return CASE_PATTERN.sub("_", string).lower()
