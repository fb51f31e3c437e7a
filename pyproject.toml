[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arangocasbin"
version = "0.1.0"
description = "Casbin policy storage adapter backed by ArangoDB"
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = [
    "casbin",
    "arangodb",
    "authorization",
    "access-control",
    "rbac",
    "adapter",
    "policy",
]
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
    "Topic :: Security",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["arangocasbin"]

[tool.hatch.build.targets.sdist]
include = [
    "arangocasbin",
    "tests",
]

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
