"""Exceptions raised by the Valetudo client and core."""
from __future__ import annotations


class ValetudoApiError(Exception):
    """Base error for any failed exchange with a Valetudo robot."""


class ValetudoConnectionError(ValetudoApiError):
    """Timeout, refused connection or non-success HTTP status."""


class ValetudoResponseError(ValetudoApiError):
    """The robot answered but the body could not be understood."""


class DuplicateDeviceError(Exception):
    """The robot is already managed by another config entry."""
