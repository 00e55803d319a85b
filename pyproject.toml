[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kotml"
version = "1.0.0"
description = "A small tensor library with automatic differentiation, datasets and batch data loaders"
requires-python = ">=3.10"
dependencies = []
keywords = ["machine-learning", "tensor", "autograd", "dataset", "dataloader", "csv"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kotml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
