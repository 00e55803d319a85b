"""Tensors with automatic differentiation, datasets, batch data loaders and a progress bar."""

__version__ = "1.0.0"