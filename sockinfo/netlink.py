"""Socket enumeration through the Linux NETLINK_INET_DIAG interface."""

from __future__ import annotations

import socket
import struct
from collections import deque
from collections.abc import Iterator
from ipaddress import IPv4Address, IPv6Address

from .errors import NetLinkError, OsCallError, UnknownProtocol, UnsupportedSocketFamily
from .types import (
    IpAddress,
    SocketInfo,
    TcpSocketInfo,
    TcpState,
    UdpSocketInfo,
    tcp_state_from_linux,
)

# Linux constants; fixed by the kernel ABI rather than by the host platform.
AF_INET = 2
AF_INET6 = 10
AF_NETLINK = 16
IPPROTO_TCP = 6
IPPROTO_UDP = 17
NETLINK_INET_DIAG = 4

NLMSG_ERROR = 2
NLMSG_DONE = 3
NLM_F_REQUEST = 0x1
NLM_F_DUMP = 0x300

SOCK_DIAG_BY_FAMILY = 20
INET_DIAG_INFO = 2
TCPF_ALL = 0xFFF
SOCKET_BUFFER_SIZE = 8192

_NLMSGHDR = struct.Struct("=IHHII")
_RTATTR = struct.Struct("=HH")
_REQ_V2_HEAD = struct.Struct("=BBBBI")
_SOCKID_SIZE = 48
_DIAG_MSG_SIZE = 72
_PORTS = struct.Struct("!HH")
_DIAG_TAIL = struct.Struct("=5I")


def _align(length: int) -> int:
    return (length + 3) & ~3


def build_diag_request(family: int, protocol: int) -> bytes:
    """Build the netlink dump request for sockets of one family and protocol."""
    body = _REQ_V2_HEAD.pack(
        family, protocol, 1 << (INET_DIAG_INFO - 1), 0, TCPF_ALL
    ) + bytes(_SOCKID_SIZE)
    header = _NLMSGHDR.pack(
        _align(_NLMSGHDR.size) + len(body),
        SOCK_DIAG_BY_FAMILY,
        NLM_F_DUMP | NLM_F_REQUEST,
        0,
        0,
    )
    return header + body


def iter_messages(data: bytes) -> Iterator[tuple[int, bytes]]:
    """Yield (message type, payload) for each complete netlink message."""
    data = bytes(data)
    offset = 0
    while True:
        remaining = len(data) - offset
        if remaining < _NLMSGHDR.size:
            return
        length, msg_type, _flags, _seq, _pid = _NLMSGHDR.unpack_from(data, offset)
        if length < _NLMSGHDR.size or length > remaining:
            return
        yield msg_type, data[offset + _align(_NLMSGHDR.size) : offset + length]
        offset += _align(length)


def iter_attributes(data: bytes) -> Iterator[tuple[int, bytes]]:
    """Yield (attribute type, payload) for each complete route attribute."""
    data = bytes(data)
    offset = 0
    while True:
        remaining = len(data) - offset
        if remaining < _RTATTR.size:
            return
        length, attr_type = _RTATTR.unpack_from(data, offset)
        if length < _RTATTR.size or length > remaining:
            return
        yield attr_type, data[offset + _align(_RTATTR.size) : offset + length]
        offset += _align(length)


def parse_ip(family: int, raw: bytes) -> IpAddress:
    """Decode the 16-byte address field of a diag message."""
    if family == AF_INET:
        return IPv4Address(bytes(raw[:4]))
    if family == AF_INET6:
        return IPv6Address(bytes(raw[:16]))
    raise UnsupportedSocketFamily(family)


def parse_tcp_state(attributes: bytes) -> TcpState:
    """Find the TCP state in the attributes following a diag message."""
    for attr_type, payload in iter_attributes(attributes):
        if attr_type == INET_DIAG_INFO and payload:
            return tcp_state_from_linux(payload[0])
    return TcpState.TIME_WAIT


def parse_diag_msg(payload: bytes, protocol: int) -> SocketInfo:
    """Turn one inet_diag_msg payload into a SocketInfo."""
    payload = bytes(payload)
    if len(payload) < _DIAG_MSG_SIZE:
        raise NetLinkError()
    family = payload[0]
    src_port, dst_port = _PORTS.unpack_from(payload, 4)
    src_ip = parse_ip(family, payload[8:24])
    dst_ip = parse_ip(family, payload[24:40])
    _expires, _rqueue, _wqueue, uid, inode = _DIAG_TAIL.unpack_from(payload, 52)

    if protocol == IPPROTO_TCP:
        info: TcpSocketInfo | UdpSocketInfo = TcpSocketInfo(
            local_addr=src_ip,
            local_port=src_port,
            remote_addr=dst_ip,
            remote_port=dst_port,
            state=parse_tcp_state(payload[_DIAG_MSG_SIZE:]),
        )
    elif protocol == IPPROTO_UDP:
        info = UdpSocketInfo(local_addr=src_ip, local_port=src_port)
    else:
        raise UnknownProtocol(protocol)
    return SocketInfo(protocol_socket_info=info, associated_pids=[], inode=inode, uid=uid)


class NetlinkIterator:
    """Iterate over the sockets of one family and protocol reported by the kernel."""

    def __init__(self, family: int, protocol: int) -> None:
        self._protocol = protocol
        self._pending: deque[tuple[int, bytes]] = deque()
        try:
            self._socket: socket.socket | None = socket.socket(
                AF_NETLINK, socket.SOCK_DGRAM, NETLINK_INET_DIAG
            )
        except OSError as exc:
            raise OsCallError(exc) from exc
        try:
            self._socket.sendto(build_diag_request(family, protocol), (0, 0))
        except OSError as exc:
            self.close()
            raise OsCallError(exc) from exc

    def __iter__(self) -> NetlinkIterator:
        return self

    def __next__(self) -> SocketInfo:
        while True:
            if self._pending:
                msg_type, payload = self._pending.popleft()
                if msg_type == NLMSG_DONE:
                    self.close()
                    raise StopIteration
                if msg_type == NLMSG_ERROR:
                    self.close()
                    raise NetLinkError()
                return parse_diag_msg(payload, self._protocol)
            if self._socket is None:
                raise StopIteration
            try:
                data = self._socket.recv(SOCKET_BUFFER_SIZE)
            except OSError as exc:
                self.close()
                raise OsCallError(exc) from exc
            if not data:
                self.close()
                raise StopIteration
            self._pending.extend(iter_messages(data))

    def close(self) -> None:
        """Close the netlink socket; further iteration stops."""
        self._pending.clear()
        if self._socket is not None:
            sock, self._socket = self._socket, None
            sock.close()

    def __enter__(self) -> NetlinkIterator:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()