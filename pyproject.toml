[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hierlik"
version = "0.1.0"
description = "Negative log-likelihoods for hierarchical models of animal occurrence and abundance"
requires-python = ">=3.10"
keywords = [
    "ecology",
    "occupancy",
    "n-mixture",
    "distance sampling",
    "likelihood",
    "hierarchical models",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["hierlik"]

[tool.pytest.ini_options]
addopts = "-ra"
