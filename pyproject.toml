[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rucdb"
version = "0.1.0"
description = "Building blocks for a small relational database: an LRU frame replacer, slotted record files, write-ahead log records and a SQL syntax tree."
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "storage", "buffer pool", "lru", "record manager", "write-ahead log", "syntax tree"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rucdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
