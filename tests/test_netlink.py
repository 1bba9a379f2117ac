import socket
import struct
from ipaddress import IPv4Address, IPv6Address
from unittest import mock

import pytest

from sockinfo import netlink
from sockinfo.errors import NetLinkError, OsCallError, UnknownProtocol, UnsupportedSocketFamily
from sockinfo.types import TcpSocketInfo, TcpState, UdpSocketInfo


def make_attr(attr_type, payload):
    length = 4 + len(payload)
    raw = struct.pack("=HH", length, attr_type) + payload
    return raw + bytes((-len(raw)) % 4)


def make_message(msg_type, payload):
    length = 16 + len(payload)
    raw = struct.pack("=IHHII", length, msg_type, 0, 0, 0) + payload
    return raw + bytes((-len(raw)) % 4)


def make_diag(family, sport, dport, src, dst, uid, inode, attrs=b""):
    return (
        struct.pack("=BBBB", family, 0, 0, 0)
        + struct.pack("!HH", sport, dport)
        + src.ljust(16, b"\0")
        + dst.ljust(16, b"\0")
        + struct.pack("=I2I", 0, 0, 0)
        + struct.pack("=5I", 0, 0, 0, uid, inode)
        + attrs
    )


class FakeSocket:
    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.sent = []
        self.closed = False

    def sendto(self, data, address):
        self.sent.append((data, address))
        return len(data)

    def recv(self, size):
        return self.chunks.pop(0) if self.chunks else b""

    def close(self):
        self.closed = True


LOCALHOST = IPv4Address("127.0.0.1").packed
ANY = IPv4Address("0.0.0.0").packed


def test_request_round_trips_through_message_parser():
    request = netlink.build_diag_request(netlink.AF_INET6, netlink.IPPROTO_UDP)
    messages = list(netlink.iter_messages(request))
    assert len(messages) == 1
    msg_type, payload = messages[0]
    assert msg_type == netlink.SOCK_DIAG_BY_FAMILY
    assert payload[0] == netlink.AF_INET6
    assert payload[1] == netlink.IPPROTO_UDP
    assert payload[2] == 1 << (netlink.INET_DIAG_INFO - 1)
    assert struct.unpack_from("=I", payload, 4)[0] == netlink.TCPF_ALL


def test_request_header_flags_and_length():
    request = netlink.build_diag_request(netlink.AF_INET, netlink.IPPROTO_TCP)
    length, _type, flags, seq, pid = struct.unpack_from("=IHHII", request)
    assert length == len(request)
    assert flags == netlink.NLM_F_DUMP | netlink.NLM_F_REQUEST
    assert (seq, pid) == (0, 0)


def test_iter_messages_yields_all_and_stops_at_truncation():
    data = make_message(20, b"abc") + make_message(netlink.NLMSG_DONE, b"")
    assert list(netlink.iter_messages(data)) == [(20, b"abc"), (netlink.NLMSG_DONE, b"")]
    truncated = make_message(20, b"abcd")[:-2]
    assert list(netlink.iter_messages(truncated)) == []


def test_iter_attributes():
    data = make_attr(1, b"x") + make_attr(netlink.INET_DIAG_INFO, b"yz")
    assert list(netlink.iter_attributes(data)) == [(1, b"x"), (netlink.INET_DIAG_INFO, b"yz")]
    assert list(netlink.iter_attributes(make_attr(1, b"abcd")[:-1])) == []


def test_parse_ip_v4_and_v6():
    assert netlink.parse_ip(netlink.AF_INET, LOCALHOST + bytes(12)) == IPv4Address("127.0.0.1")
    loopback6 = IPv6Address("::1")
    assert netlink.parse_ip(netlink.AF_INET6, loopback6.packed) == loopback6


def test_parse_ip_unsupported_family():
    with pytest.raises(UnsupportedSocketFamily) as info:
        netlink.parse_ip(99, bytes(16))
    assert info.value.family == 99


def test_parse_tcp_state_reads_info_attribute():
    attrs = make_attr(1, b"\x01") + make_attr(netlink.INET_DIAG_INFO, bytes([10, 0, 0]))
    assert netlink.parse_tcp_state(attrs) == TcpState.LISTEN


def test_parse_tcp_state_defaults_to_time_wait():
    assert netlink.parse_tcp_state(b"") == TcpState.TIME_WAIT
    assert netlink.parse_tcp_state(make_attr(1, b"\x0a")) == TcpState.TIME_WAIT


def test_parse_diag_msg_tcp():
    attrs = make_attr(netlink.INET_DIAG_INFO, bytes([1]))
    payload = make_diag(netlink.AF_INET, 8080, 443, LOCALHOST, ANY, 1000, 4242, attrs)
    info = netlink.parse_diag_msg(payload, netlink.IPPROTO_TCP)
    assert info.protocol_socket_info == TcpSocketInfo(
        local_addr=IPv4Address(LOCALHOST),
        local_port=8080,
        remote_addr=IPv4Address(ANY),
        remote_port=443,
        state=TcpState.ESTABLISHED,
    )
    assert (info.uid, info.inode, info.associated_pids) == (1000, 4242, [])


def test_parse_diag_msg_udp():
    payload = make_diag(netlink.AF_INET, 53, 0, LOCALHOST, ANY, 7, 99)
    info = netlink.parse_diag_msg(payload, netlink.IPPROTO_UDP)
    assert info.protocol_socket_info == UdpSocketInfo(local_addr=IPv4Address(LOCALHOST), local_port=53)
    assert info.inode == 99


def test_parse_diag_msg_errors():
    payload = make_diag(netlink.AF_INET, 1, 2, LOCALHOST, ANY, 0, 0)
    with pytest.raises(UnknownProtocol) as unknown:
        netlink.parse_diag_msg(payload, 1)
    assert unknown.value.protocol == 1
    with pytest.raises(NetLinkError):
        netlink.parse_diag_msg(payload[:20], netlink.IPPROTO_TCP)


def test_iterator_reads_until_done():
    first = make_diag(netlink.AF_INET, 1111, 0, LOCALHOST, ANY, 0, 11)
    second = make_diag(netlink.AF_INET, 2222, 0, LOCALHOST, ANY, 0, 22)
    fake = FakeSocket([
        make_message(20, first) + make_message(20, second),
        make_message(netlink.NLMSG_DONE, b""),
    ])
    with mock.patch("socket.socket", return_value=fake) as factory:
        iterator = netlink.NetlinkIterator(netlink.AF_INET, netlink.IPPROTO_UDP)
        results = list(iterator)
    factory.assert_called_once_with(netlink.AF_NETLINK, socket.SOCK_DGRAM, netlink.NETLINK_INET_DIAG)
    assert fake.sent == [(netlink.build_diag_request(netlink.AF_INET, netlink.IPPROTO_UDP), (0, 0))]
    assert [r.local_port for r in results] == [1111, 2222]
    assert [r.inode for r in results] == [11, 22]
    assert fake.closed


def test_iterator_raises_on_error_message():
    fake = FakeSocket([make_message(netlink.NLMSG_ERROR, bytes(20))])
    with mock.patch("socket.socket", return_value=fake):
        iterator = netlink.NetlinkIterator(netlink.AF_INET, netlink.IPPROTO_TCP)
        with pytest.raises(NetLinkError) as info:
            next(iterator)
    assert str(info.value) == "NetLink Error"
    assert fake.closed
    assert list(iterator) == []


def test_iterator_socket_creation_failure():
    with mock.patch("socket.socket", side_effect=OSError("denied")):
        with pytest.raises(OsCallError) as info:
            netlink.NetlinkIterator(netlink.AF_INET, netlink.IPPROTO_TCP)
    assert isinstance(info.value.cause, OSError)


def test_iterator_context_manager_closes():
    fake = FakeSocket([])
    with mock.patch("socket.socket", return_value=fake):
        with netlink.NetlinkIterator(netlink.AF_INET6, netlink.IPPROTO_TCP) as iterator:
            assert not fake.closed
    assert fake.closed
    assert list(iterator) == []