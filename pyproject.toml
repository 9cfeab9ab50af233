[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "simplecontent"
version = "0.1.0"
description = "Repositories for contents, stored objects, their metadata and derivation relationships, in memory or on PostgreSQL"
requires-python = ">=3.10"
dependencies = []
keywords = ["content", "repository", "metadata", "postgresql", "derivation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["simplecontent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
