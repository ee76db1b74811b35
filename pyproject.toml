[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mp4tool"
version = "0.1.0"
description = "Model, inspect and validate ISO base media (MP4) box trees"
requires-python = ">=3.10"
dependencies = []
keywords = ["mp4", "iso-bmff", "fragmented-mp4", "boxes", "codecs", "validation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Conversion",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mp4tool"]

[tool.hatch.build.targets.sdist]
include = ["mp4tool", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
