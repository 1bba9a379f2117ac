# sockinfo

List the TCP and UDP sockets open on a Linux machine, together with the
processes that hold them. Socket data comes straight from the kernel through
the `sock_diag` netlink interface (`NETLINK_INET_DIAG`), and process
ownership is found by scanning `/proc/<pid>/fd`. There are no dependencies
outside the standard library.

## Installation

```
pip install .
```

## Usage

```python
from sockinfo.api import get_sockets_info
from sockinfo.types import AddressFamilyFlags, ProtocolFlags, TcpSocketInfo

af_flags = AddressFamilyFlags.IPV4 | AddressFamilyFlags.IPV6
proto_flags = ProtocolFlags.TCP | ProtocolFlags.UDP

for info in get_sockets_info(af_flags, proto_flags):
    proto = info.protocol_socket_info
    if isinstance(proto, TcpSocketInfo):
        print(
            f"TCP {proto.local_addr}:{proto.local_port} -> "
            f"{proto.remote_addr}:{proto.remote_port} "
            f"{info.associated_pids} - {proto.state}"
        )
    else:
        print(
            f"UDP {proto.local_addr}:{proto.local_port} -> *:* "
            f"{info.associated_pids}"
        )
```

### Functions in `sockinfo.api`

- `get_sockets_info(af_flags, proto_flags)` returns a list.
- `iterate_sockets_info(af_flags, proto_flags)` does the same work and yields
  the results one at a time.
- `iterate_sockets_info_without_pids(af_flags, proto_flags)` skips the `/proc`
  scan, so every result has an empty `associated_pids`. The netlink requests
  are sent when this is called, so failures to open or query a netlink socket
  are raised by the call itself rather than during iteration.
- `attach_pids(sockets_info, pids_by_inode=None)` fills in `associated_pids`
  from a mapping of inode to process ids (read from `/proc` when none is
  given). The ids are sorted, and each inode's ids are handed out only once:
  a later socket with the same inode gets an empty list.

Requests are made in the order IPv4 TCP, IPv4 UDP, IPv6 TCP, IPv6 UDP, for
whichever of these the flags select. Calling with empty flags returns an
empty list.

### Results

`sockinfo.types.SocketInfo` has these fields:

- `protocol_socket_info`: a `TcpSocketInfo` (`local_addr`, `local_port`,
  `remote_addr`, `remote_port` and a `TcpState`) or a `UdpSocketInfo`
  (`local_addr`, `local_port`). Addresses are `ipaddress.IPv4Address` or
  `ipaddress.IPv6Address` objects.
- `associated_pids`: the ids of the processes that hold the socket.
- `inode` and `uid`: the socket's inode number and the UID that owns it.

The properties `info.local_addr` and `info.local_port` give the local
endpoint for either protocol.

`TcpState` is an enum whose `str()` is the usual netstat name (`LISTEN`,
`ESTABLISHED`, `SYN_RCVD`, ...). When a TCP message carries no
`INET_DIAG_INFO` attribute, its state is reported as `TcpState.TIME_WAIT`.
The helpers `tcp_state_from_linux`, `tcp_state_from_name` and
`tcp_state_from_windows` map kernel state numbers, state names and Windows
`MIB_TCP_STATE` numbers to a `TcpState`, giving `TcpState.UNKNOWN` for
anything they do not recognise.

### Lower-level pieces

- `sockinfo.netlink.NetlinkIterator(family, protocol)` queries the kernel for
  one address family and protocol and yields `SocketInfo` objects. It closes
  its socket when exhausted and can be used as a context manager.
  `build_diag_request`, `iter_messages`, `iter_attributes`, `parse_ip`,
  `parse_tcp_state` and `parse_diag_msg` build and decode the netlink
  messages and work on plain bytes.
- `sockinfo.procfs.build_pids_by_inode(proc_root="/proc")` returns a dict of
  socket inode to the set of process ids holding it, and
  `parse_socket_inode(link)` reads the inode from a `socket:[N]` link target.

## Errors

Every error raised by the package is a subclass of
`sockinfo.errors.NetstatError`:

- `OsCallError`: opening the netlink socket, sending the request, receiving
  the reply, or listing the `/proc` directory failed.
- `NetLinkError`: the kernel answered with a netlink error message, or a
  reply was too short to be a diag message.
- `UnsupportedSocketFamily`: a reply carried an address family other than
  IPv4 or IPv6.
- `UnknownProtocol`: a reply was decoded for a protocol other than TCP or UDP.

Processes whose file descriptors cannot be read, for example because of
missing permissions, are skipped without raising. Sockets held only by those
processes are reported with no PIDs.

## What it does not do

- It works on Linux only; there is no support for reading socket tables on
  macOS or Windows.
- There is no command-line tool; the package is used as a library.

## Running the tests

```
pip install ".[test]"
pytest
```