"""Datasets, CSV loading and mini-batch data loaders."""