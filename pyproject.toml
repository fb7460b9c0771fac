[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsproto"
version = "0.1.0"
description = "Parse and build TeamSpeak 3 packets and commands, with the protocol's basic types, keys, errors and event structures."
requires-python = ">=3.10"
keywords = ["teamspeak", "teamspeak3", "ts3", "voip", "protocol"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Internet Phone",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tsproto"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
