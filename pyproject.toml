[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sponge"
version = "0.1.0"
description = "Networking building blocks: zero-copy buffers, wire-format integer parsing, Internet checksums, IPv4 addresses, file descriptors, sockets, TUN/TAP devices and a poll-based event loop"
requires-python = ">=3.10"
dependencies = []
keywords = ["networking", "udp", "tcp", "sockets", "checksum", "event-loop", "poll", "tun", "tap"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sponge"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
