[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gardn"
version = "0.1.0"
description = "Authoritative game server for a petal-and-flower arena game over WebSockets"
requires-python = ">=3.10"
keywords = ["game", "server", "websocket", "arena", "simulation", "multiplayer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Arcade",
]
dependencies = [
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gardn-server = "gardn.server:main"

[tool.hatch.build.targets.wheel]
packages = ["gardn"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
