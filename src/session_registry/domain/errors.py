"""Errors raised while talking to the remote authorization service."""


class SessionRegistryError(Exception):
    """Base class for remote session registry failures."""


class TransportError(SessionRegistryError):
    """The remote service could not be reached or answered with an HTTP error."""


class DecodeError(SessionRegistryError):
    """The remote service answered with a payload that could not be parsed."""


class RemoteError(SessionRegistryError):
    """The remote service answered with a non-ok envelope."""

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg
