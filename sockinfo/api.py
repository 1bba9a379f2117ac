"""Public entry points for listing the sockets open on this host."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace

from .netlink import AF_INET, AF_INET6, IPPROTO_TCP, IPPROTO_UDP, NetlinkIterator
from .procfs import build_pids_by_inode
from .types import AddressFamilyFlags, ProtocolFlags, SocketInfo


def _chain(iterators: list[NetlinkIterator]) -> Iterator[SocketInfo]:
    try:
        for iterator in iterators:
            yield from iterator
    finally:
        for iterator in iterators:
            iterator.close()


def iterate_sockets_info_without_pids(
    af_flags: AddressFamilyFlags, proto_flags: ProtocolFlags
) -> Iterator[SocketInfo]:
    """Iterate through sockets information without attaching process ids.

    The kernel is queried immediately, so failures to open or query a netlink
    socket are raised by this call rather than during iteration.
    """
    requests = [
        (family, protocol)
        for family_flag, family in (
            (AddressFamilyFlags.IPV4, AF_INET),
            (AddressFamilyFlags.IPV6, AF_INET6),
        )
        if family_flag in af_flags
        for protocol_flag, protocol in (
            (ProtocolFlags.TCP, IPPROTO_TCP),
            (ProtocolFlags.UDP, IPPROTO_UDP),
        )
        if protocol_flag in proto_flags
    ]

    iterators: list[NetlinkIterator] = []
    try:
        for family, protocol in requests:
            iterators.append(NetlinkIterator(family, protocol))
    except BaseException:
        for iterator in iterators:
            iterator.close()
        raise
    return _chain(iterators)


def attach_pids(
    sockets_info: Iterable[SocketInfo],
    pids_by_inode: Mapping[int, Iterable[int]] | None = None,
) -> Iterator[SocketInfo]:
    """Fill in the ids of the processes holding each socket.

    Each inode's processes are handed out once: a later socket with the same
    inode gets no process ids. Without a mapping, one is read from procfs.
    """
    if pids_by_inode is None:
        pids_by_inode = build_pids_by_inode()
    remaining = {inode: sorted(pids) for inode, pids in pids_by_inode.items()}

    def attach() -> Iterator[SocketInfo]:
        for info in sockets_info:
            yield replace(info, associated_pids=remaining.pop(info.inode, []))

    return attach()


def iterate_sockets_info(
    af_flags: AddressFamilyFlags, proto_flags: ProtocolFlags
) -> Iterator[SocketInfo]:
    """Iterate through sockets information, with process ids attached."""
    return attach_pids(iterate_sockets_info_without_pids(af_flags, proto_flags))


def get_sockets_info(
    af_flags: AddressFamilyFlags, proto_flags: ProtocolFlags
) -> list[SocketInfo]:
    """Retrieve sockets information as a list; the first error is raised."""
    return list(iterate_sockets_info(af_flags, proto_flags))