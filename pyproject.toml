[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "infiniops"
version = "0.1.0"
description = "Descriptor-based tensor operators (pooling, global average pooling, top-k/top-p sampling) on NumPy arrays"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["tensor", "operators", "pooling", "sampling", "numpy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["infiniops"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
