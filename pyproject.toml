[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sockinfo"
version = "0.1.0"
description = "List open TCP and UDP sockets with their owning processes using Linux sock_diag netlink and procfs"
requires-python = ">=3.10"
dependencies = []
keywords = ["netstat", "sockets", "netlink", "sock_diag", "tcp", "udp", "procfs"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sockinfo"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
