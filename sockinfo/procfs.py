"""Mapping of socket inodes to the processes holding them, read from procfs."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import OsCallError

_SOCKET_PREFIX = "socket:["
_U32_LIMIT = 1 << 32


def _parse_u32(text: str) -> int | None:
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value < _U32_LIMIT else None


def parse_socket_inode(link: str) -> int | None:
    """Return the inode of a 'socket:[N]' link target, or None for anything else."""
    if not link.startswith(_SOCKET_PREFIX):
        return None
    return _parse_u32(link[len(_SOCKET_PREFIX) : -1])


def build_pids_by_inode(proc_root: str | os.PathLike[str] = "/proc") -> dict[int, set[int]]:
    """Collect, for every socket inode, the ids of processes with it open."""
    root = Path(proc_root)
    try:
        entries = list(root.iterdir())
    except OSError as exc:
        raise OsCallError(exc) from exc

    pids_by_inode: dict[int, set[int]] = {}
    for entry in entries:
        pid = _parse_u32(entry.name)
        if pid is None:
            continue
        try:
            fds = list((entry / "fd").iterdir())
        except OSError:
            continue
        for fd in fds:
            try:
                target = os.readlink(fd)
            except OSError:
                continue
            inode = parse_socket_inode(target)
            if inode is not None:
                pids_by_inode.setdefault(inode, set()).add(pid)
    return pids_by_inode