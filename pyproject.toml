[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lxpbridge"
version = "0.1.0"
description = "Building blocks for bridging LuxPower/EG4 inverter data to MQTT, Home Assistant and SQL databases"
requires-python = ">=3.10"
keywords = [
    "luxpower",
    "eg4",
    "inverter",
    "solar",
    "mqtt",
    "home-assistant",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Home Automation",
]
dependencies = [
    "pyyaml",
    "sqlalchemy",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["lxpbridge"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
