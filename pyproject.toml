[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uavlink"
version = "0.1.0"
description = "A ground-station TCP server and a UAV telemetry simulator that exchange telemetry lines and JPEG frames"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = ["uav", "drone", "telemetry", "ground station", "tcp", "simulator", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
uavlink-gcs = "uavlink.gcs:main"
uavlink-simulator = "uavlink.simulator:main"

[tool.hatch.build.targets.wheel]
packages = ["uavlink"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
