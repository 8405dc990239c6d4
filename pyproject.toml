[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pathraster"
version = "0.1.0"
description = "CPU stages of a tile-based 2D vector path rasterizer"
requires-python = ">=3.10"
dependencies = []
keywords = ["2d", "vector-graphics", "rasterization", "bezier", "tiling"]
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
    "Topic :: Multimedia :: Graphics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pathraster"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
