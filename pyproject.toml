[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rkguide"
version = "0.1.0"
description = "Adaptive Runge-Kutta-Fehlberg ODE solver with event detection, and a seeker-guided missile pursuit simulation built on it"
requires-python = ">=3.10"
dependencies = []
keywords = ["ode", "runge-kutta", "rkf45", "numerical-integration", "events", "guidance", "simulation", "pid"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rkguide-sim = "rkguide.simulation:main"

[tool.hatch.build.targets.wheel]
packages = ["rkguide"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
