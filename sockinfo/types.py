"""Data types describing sockets and their states."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from ipaddress import IPv4Address, IPv6Address
from typing import Union

IpAddress = Union[IPv4Address, IPv6Address]


class AddressFamilyFlags(enum.IntFlag):
    """Set of address families."""

    IPV4 = 0b01
    IPV6 = 0b10


class ProtocolFlags(enum.IntFlag):
    """Set of protocols."""

    TCP = 0b01
    UDP = 0b10


class TcpState(enum.Enum):
    """State of a TCP connection; the value is its display name."""

    CLOSED = "CLOSED"
    LISTEN = "LISTEN"
    SYN_SENT = "SYN_SENT"
    SYN_RECEIVED = "SYN_RCVD"
    ESTABLISHED = "ESTABLISHED"
    FIN_WAIT_1 = "FIN_WAIT_1"
    FIN_WAIT_2 = "FIN_WAIT_2"
    CLOSE_WAIT = "CLOSE_WAIT"
    CLOSING = "CLOSING"
    LAST_ACK = "LAST_ACK"
    TIME_WAIT = "TIME_WAIT"
    DELETE_TCB = "DELETE_TCB"
    UNKNOWN = "__UNKNOWN"

    def __str__(self) -> str:
        return self.value


@dataclass
class TcpSocketInfo:
    """TCP-specific socket information."""

    local_addr: IpAddress
    local_port: int
    remote_addr: IpAddress
    remote_port: int
    state: TcpState


@dataclass
class UdpSocketInfo:
    """UDP-specific socket information."""

    local_addr: IpAddress
    local_port: int


ProtocolSocketInfo = Union[TcpSocketInfo, UdpSocketInfo]


@dataclass
class SocketInfo:
    """General socket information."""

    protocol_socket_info: ProtocolSocketInfo
    associated_pids: list[int] = field(default_factory=list)
    inode: int = 0
    uid: int = 0

    @property
    def local_addr(self) -> IpAddress:
        """Local address of this socket."""
        return self.protocol_socket_info.local_addr

    @property
    def local_port(self) -> int:
        """Local port of this socket."""
        return self.protocol_socket_info.local_port


_LINUX_STATES = {
    1: TcpState.ESTABLISHED,
    2: TcpState.SYN_SENT,
    3: TcpState.SYN_RECEIVED,
    4: TcpState.FIN_WAIT_1,
    5: TcpState.FIN_WAIT_2,
    6: TcpState.TIME_WAIT,
    7: TcpState.CLOSED,
    8: TcpState.CLOSE_WAIT,
    9: TcpState.LAST_ACK,
    10: TcpState.LISTEN,
    11: TcpState.CLOSING,
}

_NAMED_STATES = {
    state.value: state
    for state in TcpState
    if state not in (TcpState.DELETE_TCB, TcpState.UNKNOWN)
}

# MIB_TCP_STATE values reported by the Windows IP helper tables.
_WINDOWS_STATES = {
    1: TcpState.CLOSED,
    2: TcpState.LISTEN,
    3: TcpState.SYN_SENT,
    4: TcpState.SYN_RECEIVED,
    5: TcpState.ESTABLISHED,
    6: TcpState.FIN_WAIT_1,
    7: TcpState.FIN_WAIT_2,
    8: TcpState.CLOSE_WAIT,
    9: TcpState.CLOSING,
    10: TcpState.LAST_ACK,
    11: TcpState.TIME_WAIT,
    12: TcpState.DELETE_TCB,
}


def tcp_state_from_linux(value: int) -> TcpState:
    """Map a Linux kernel TCP state number to a TcpState."""
    return _LINUX_STATES.get(value, TcpState.UNKNOWN)


def tcp_state_from_name(name: str) -> TcpState:
    """Map a netstat-style state name to a TcpState."""
    return _NAMED_STATES.get(name, TcpState.UNKNOWN)


def tcp_state_from_windows(value: int) -> TcpState:
    """Map a Windows MIB_TCP_STATE number to a TcpState."""
    return _WINDOWS_STATES.get(value, TcpState.UNKNOWN)