[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sansws"
version = "2026.3.0"
description = "Sans-I/O WebSocket protocol building blocks: frames, opening handshakes and permessage-deflate negotiation"
requires-python = ">=3.10"
dependencies = []
keywords = ["websocket", "rfc6455", "rfc7692", "sans-io", "protocol", "handshake", "permessage-deflate"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["sansws"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
