"""Batch loading of datasets, subsets and train/validation splitting."""

from __future__ import annotations

import operator
import os
import random
from collections.abc import Iterator, Sequence

from kotml.data.csv_dataset import CSVDataset
from kotml.data.datasets import Dataset, DataType, SyntheticDataset, TensorDataset
from kotml.tensor import Tensor


class SubsetDataset(Dataset):
    """A view of another dataset restricted to the given indices, in that order."""

    def __init__(self, base_dataset: Dataset, indices: Sequence[int]):
        if base_dataset is None:
            raise ValueError("Base dataset cannot be null")
        indices = [operator.index(i) for i in indices]
        if not indices:
            raise ValueError("Indices cannot be empty")
        size = len(base_dataset)
        for idx in indices:
            if not 0 <= idx < size:
                raise IndexError(f"Index {idx} out of range for base dataset")
        self._base = base_dataset
        self._indices = tuple(indices)

    def get_item(self, index: int) -> tuple[Tensor, Tensor]:
        self.validate_index(index)
        return self._base.get_item(self._indices[index])

    def __len__(self) -> int:
        return len(self._indices)

    @property
    def name(self) -> str:
        return "SubsetOf" + self._base.name

    @property
    def input_shape(self) -> tuple[int, ...]:
        return self._base.input_shape

    @property
    def target_shape(self) -> tuple[int, ...]:
        return self._base.target_shape

    @property
    def indices(self) -> tuple[int, ...]:
        return self._indices

    @property
    def base_dataset(self) -> Dataset:
        return self._base


class DataLoader:
    """Groups dataset samples into batches, optionally reshuffling each epoch."""

    def __init__(self, dataset: Dataset, batch_size=32, shuffle=True,
                 drop_last=False, seed=42):
        if dataset is None:
            raise ValueError("Dataset cannot be null")
        if batch_size <= 0:
            raise ValueError("Batch size must be positive")
        if dataset.empty:
            raise ValueError("Dataset cannot be empty")
        self._dataset = dataset
        self._batch_size = int(batch_size)
        self._shuffle = bool(shuffle)
        self._drop_last = bool(drop_last)
        self._seed = int(seed)
        self._rng = random.Random(self._seed)
        self._indices = list(range(len(dataset)))
        self._needs_reshuffle = True

    # ----- configuration -----------------------------------------------------

    @property
    def num_batches(self) -> int:
        size = len(self._dataset)
        if self._drop_last:
            return size // self._batch_size
        return -(-size // self._batch_size)

    def __len__(self) -> int:
        return self.num_batches

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @batch_size.setter
    def batch_size(self, value: int) -> None:
        if value <= 0:
            raise ValueError("Batch size must be positive")
        self._batch_size = int(value)

    @property
    def dataset_size(self) -> int:
        return len(self._dataset)

    @property
    def shuffle(self) -> bool:
        return self._shuffle

    @shuffle.setter
    def shuffle(self, value: bool) -> None:
        self._shuffle = bool(value)
        if self._shuffle:
            self._needs_reshuffle = True

    @property
    def drop_last(self) -> bool:
        return self._drop_last

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def seed(self) -> int:
        return self._seed

    def set_seed(self, seed: int) -> None:
        """Reseed the shuffling generator and force a reshuffle."""
        self._seed = int(seed)
        self._rng.seed(self._seed)
        self._needs_reshuffle = True

    def reset(self) -> None:
        """Force a reshuffle before the next batch is read."""
        self._needs_reshuffle = True

    # ----- batching ----------------------------------------------------------

    def _maybe_shuffle(self) -> None:
        if self._shuffle and self._needs_reshuffle:
            self._rng.shuffle(self._indices)
            self._needs_reshuffle = False

    def _collect(self, start: int, end: int) -> tuple[Tensor, Tensor]:
        positions = self._indices[start:end]
        samples = [self._dataset.get_item(pos) for pos in positions]
        first_input, first_target = samples[0]
        if first_input.ndim != 1:
            raise ValueError("Unsupported input tensor dimensionality for batching")
        if first_target.ndim != 1:
            raise ValueError("Unsupported target tensor dimensionality for batching")
        inputs: list[float] = []
        targets: list[float] = []
        for sample_input, sample_target in samples:
            if sample_input.shape != first_input.shape:
                raise ValueError("Input samples in a batch must share one shape")
            if sample_target.shape != first_target.shape:
                raise ValueError("Target samples in a batch must share one shape")
            inputs.extend(sample_input.data)
            targets.extend(sample_target.data)
        count = len(samples)
        return (
            Tensor(inputs, (count, *first_input.shape)),
            Tensor(targets, (count, *first_target.shape)),
        )

    def get_batch(self, batch_index: int) -> tuple[Tensor, Tensor]:
        """The ``(inputs, targets)`` batch at ``batch_index``."""
        batch_index = operator.index(batch_index)
        total = self.num_batches
        if not 0 <= batch_index < total:
            raise IndexError(f"Batch index {batch_index} out of range [0, {total})")
        self._maybe_shuffle()
        start = batch_index * self._batch_size
        end = min(start + self._batch_size, len(self._dataset))
        return self._collect(start, end)

    def __iter__(self) -> Iterator[tuple[Tensor, Tensor]]:
        if self._shuffle:
            self._needs_reshuffle = True
        for batch_index in range(self.num_batches):
            yield self.get_batch(batch_index)

    def get_all_data(self) -> tuple[Tensor, Tensor]:
        """Every sample as a single batch."""
        self._maybe_shuffle()
        return self._collect(0, len(self._dataset))

    def train_val_split(self, train_ratio=0.8, seed=42) -> tuple["DataLoader", "DataLoader"]:
        """Split into a training loader and a non-shuffling validation loader."""
        if not 0.0 < train_ratio < 1.0:
            raise ValueError("Train ratio must be between 0 and 1")
        size = len(self._dataset)
        train_size = int(size * train_ratio)
        order = list(range(size))
        random.Random(seed).shuffle(order)
        train_set = SubsetDataset(self._dataset, order[:train_size])
        val_set = SubsetDataset(self._dataset, order[train_size:])
        train_loader = DataLoader(train_set, self._batch_size, self._shuffle,
                                  self._drop_last, self._seed)
        val_loader = DataLoader(val_set, self._batch_size, False,
                                self._drop_last, self._seed)
        return train_loader, val_loader


def create_tensor_loader(inputs: Tensor, targets: Tensor, batch_size=32, shuffle=True,
                         drop_last=False, seed=42) -> DataLoader:
    """A loader over in-memory tensors."""
    return DataLoader(TensorDataset(inputs, targets), batch_size, shuffle, drop_last, seed)


def create_synthetic_loader(data_type: DataType, num_samples, input_dim=1, output_dim=1,
                            noise_level=0.1, batch_size=32, shuffle=True,
                            seed=42) -> DataLoader:
    """A loader over generated data."""
    dataset = SyntheticDataset(data_type, num_samples, input_dim, output_dim,
                               noise_level, seed)
    return DataLoader(dataset, batch_size, shuffle, False, seed)


def create_train_val_loaders(inputs: Tensor, targets: Tensor, train_ratio=0.8,
                             batch_size=32, shuffle=True,
                             seed=42) -> tuple[DataLoader, DataLoader]:
    """Training and validation loaders over in-memory tensors."""
    loader = create_tensor_loader(inputs, targets, batch_size, shuffle, False, seed)
    return loader.train_val_split(train_ratio, seed)


def create_csv_loader(filename: str | os.PathLike, input_columns=None, target_columns=None,
                      batch_size=32, shuffle=True, has_header=True, delimiter=",",
                      skip_rows=0, seed=42) -> DataLoader:
    """A loader over a CSV file; columns are detected when none are given."""
    dataset = CSVDataset(filename, input_columns, target_columns, has_header,
                         delimiter, skip_rows)
    return DataLoader(dataset, batch_size, shuffle, False, seed)


def create_csv_train_val_loaders(filename: str | os.PathLike, input_columns=None,
                                 target_columns=None, train_ratio=0.8, batch_size=32,
                                 shuffle=True, has_header=True, delimiter=",",
                                 skip_rows=0, seed=42) -> tuple[DataLoader, DataLoader]:
    """Training and validation loaders over a CSV file."""
    loader = create_csv_loader(filename, input_columns, target_columns, batch_size,
                               shuffle, has_header, delimiter, skip_rows, seed)
    return loader.train_val_split(train_ratio, seed)