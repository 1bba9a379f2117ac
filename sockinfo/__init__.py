"""Retrieve TCP and UDP socket information, with owning processes, from the Linux kernel."""

__version__ = "0.1.0"