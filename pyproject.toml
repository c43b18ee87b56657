[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bpcli"
version = "0.1.0"
description = "Helpers for reaching managed OpenShift clusters through a backplane: kubeconfig handling, elevation, health checks, incident and ticket lookups, and monitoring proxy helpers."
requires-python = ">=3.10"
keywords = [
    "openshift",
    "backplane",
    "kubeconfig",
    "sre",
    "pagerduty",
    "jira",
    "monitoring",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.28",
    "pyjwt>=2.6",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["bpcli"]

[tool.hatch.build.targets.sdist]
include = ["bpcli", "tests", "README.md", "pyproject.toml"]

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
ignore_missing_imports = true
