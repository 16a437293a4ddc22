[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sofsim"
version = "0.1.0"
description = "An in-memory model of a small inode-based file system (formatting and free lists), with contract checks, text-box and helper utilities"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "inode", "mkfs", "free list", "block device", "education", "text boxes"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sofsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
