"""Exceptions raised while collecting socket information."""

from __future__ import annotations


class NetstatError(Exception):
    """Base class for every error raised by this package."""


class OsCallError(NetstatError):
    """A call into the operating system failed."""

    def __init__(self, cause: OSError | None = None) -> None:
        super().__init__("Failed to call ffi")
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class UnsupportedSocketFamily(NetstatError):
    """A socket reported an address family other than IPv4 or IPv6."""

    def __init__(self, family: int) -> None:
        super().__init__(f"Unsupported SocketFamily {family}")
        self.family = family


class NetLinkError(NetstatError):
    """The kernel answered a netlink request with an error message."""

    def __init__(self) -> None:
        super().__init__("NetLink Error")


class UnknownProtocol(NetstatError):
    """A socket was reported for a protocol that is neither TCP nor UDP."""

    def __init__(self, protocol: int) -> None:
        super().__init__(f"Found unknown protocol {protocol}")
        self.protocol = protocol