[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "beadwork"
version = "0.6.0"
description = "Indented terminal output, intent replay and a self-upgrade command for the bw issue tracker"
requires-python = ">=3.10"
dependencies = []
keywords = ["issues", "bug-tracking", "cli", "terminal", "intent-replay", "self-upgrade"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Bug Tracking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bw-upgrade = "beadwork.upgrade:main"

[tool.hatch.build.targets.wheel]
packages = ["beadwork"]

[tool.hatch.build.targets.sdist]
include = ["beadwork", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
