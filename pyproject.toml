[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ecsgame"
version = "0.1.0"
description = "Game server building blocks: a KCP reliable-UDP protocol engine, flow-field pathfinding, a skill registry and a ping HTTP endpoint."
requires-python = ">=3.10"
dependencies = []
keywords = ["game-server", "kcp", "reliable-udp", "pathfinding", "flow-field"]
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
    "Topic :: Games/Entertainment",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ecsgame-server = "ecsgame.server.app:main"

[tool.hatch.build.targets.wheel]
packages = ["ecsgame"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
