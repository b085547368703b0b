[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "acid"
version = "0.1.0"
description = "Networking building blocks: timers, named threads, addresses, URIs, sockets and a threaded TCP server"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = ["networking", "socket", "tcp", "uri", "timer", "address"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["acid"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
