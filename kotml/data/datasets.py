"""Dataset abstractions: in-memory tensor datasets and synthetic generators."""

from __future__ import annotations

import abc
import enum
import math
import random

from kotml.tensor import Tensor

_PI = 3.14159


class Dataset(abc.ABC):
    """A finite, indexable collection of ``(input, target)`` tensor pairs."""

    @abc.abstractmethod
    def get_item(self, index: int) -> tuple[Tensor, Tensor]:
        """The sample at ``index`` as an ``(input, target)`` pair."""

    @abc.abstractmethod
    def __len__(self) -> int:
        """Number of samples."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short description of the dataset."""

    @property
    @abc.abstractmethod
    def input_shape(self) -> tuple[int, ...]:
        """Shape of a single input sample."""

    @property
    @abc.abstractmethod
    def target_shape(self) -> tuple[int, ...]:
        """Shape of a single target sample."""

    def __getitem__(self, index: int) -> tuple[Tensor, Tensor]:
        return self.get_item(index)

    @property
    def empty(self) -> bool:
        return len(self) == 0

    def validate_index(self, index: int) -> None:
        """Raise ``IndexError`` unless ``0 <= index < len(self)``."""
        size = len(self)
        if not 0 <= index < size:
            raise IndexError(f"Dataset index {index} out of range [0, {size})")


class TensorDataset(Dataset):
    """Samples held in two tensors whose first dimension indexes the samples."""

    def __init__(self, inputs: Tensor, targets: Tensor):
        if inputs.empty or targets.empty:
            raise ValueError("Input and target tensors cannot be empty")
        if inputs.shape[0] != targets.shape[0]:
            raise ValueError("Input and target tensors must have the same batch size")
        self._inputs = inputs
        self._targets = targets
        self._num_samples = inputs.shape[0]
        self._input_shape = tuple(inputs.shape[1:]) or (1,)
        self._target_shape = tuple(targets.shape[1:]) or (1,)

    def get_item(self, index: int) -> tuple[Tensor, Tensor]:
        self.validate_index(index)
        return _extract_sample(self._inputs, index), _extract_sample(self._targets, index)

    def __len__(self) -> int:
        return self._num_samples

    @property
    def name(self) -> str:
        return "TensorDataset"

    @property
    def input_shape(self) -> tuple[int, ...]:
        return self._input_shape

    @property
    def target_shape(self) -> tuple[int, ...]:
        return self._target_shape

    @property
    def inputs(self) -> Tensor:
        return self._inputs

    @property
    def targets(self) -> Tensor:
        return self._targets


def _extract_sample(batched: Tensor, index: int) -> Tensor:
    if batched.ndim == 1:
        return Tensor([batched[index]], (1,))
    if batched.ndim == 2:
        cols = batched.shape[1]
        return Tensor([batched.at((index, j)) for j in range(cols)], (cols,))
    raise ValueError("unsupported tensor dimensionality for sample extraction")


class DataType(enum.Enum):
    """Kinds of synthetic data."""

    LINEAR_REGRESSION = "LinearRegressionDataset"
    POLYNOMIAL_REGRESSION = "PolynomialRegressionDataset"
    BINARY_CLASSIFICATION = "BinaryClassificationDataset"
    MULTICLASS_CLASSIFICATION = "MulticlassClassificationDataset"
    SINE_WAVE = "SineWaveDataset"
    SPIRAL = "SpiralDataset"


_PARAMETERS = {
    DataType.LINEAR_REGRESSION: (2.5, 1.3),          # slope, intercept
    DataType.POLYNOMIAL_REGRESSION: (0.5, -1.2, 2.0),  # a, b, c of ax^2 + bx + c
    DataType.SINE_WAVE: (1.0, 1.0, 0.0),             # amplitude, frequency, phase
}


class SyntheticDataset(Dataset):
    """Samples generated on demand, deterministically from ``seed`` and the index."""

    DataType = DataType

    def __init__(self, data_type, num_samples, input_dim=1, output_dim=1,
                 noise_level=0.1, seed=42):
        data_type = DataType(data_type)
        if num_samples <= 0:
            raise ValueError("Number of samples must be positive")
        if input_dim < 1 or output_dim < 1:
            raise ValueError("Input and output dimensions must be positive")
        if data_type in (DataType.BINARY_CLASSIFICATION,) and output_dim < 2:
            raise ValueError("Binary classification needs at least 2 outputs")
        if data_type is DataType.SPIRAL:
            if input_dim < 2:
                raise ValueError("Spiral data needs at least 2 input dimensions")
            if output_dim > num_samples:
                raise ValueError("Spiral data needs at least one sample per class")
        if noise_level < 0:
            raise ValueError("Noise level cannot be negative")
        self._data_type = data_type
        self._num_samples = int(num_samples)
        self._input_dim = int(input_dim)
        self._output_dim = int(output_dim)
        self._noise_level = float(noise_level)
        self._seed = int(seed)
        self._parameters = _PARAMETERS.get(data_type, ())

    @property
    def data_type(self) -> DataType:
        return self._data_type

    def get_item(self, index: int) -> tuple[Tensor, Tensor]:
        self.validate_index(index)
        return self._generate(index)

    def __len__(self) -> int:
        return self._num_samples

    @property
    def name(self) -> str:
        return self._data_type.value

    @property
    def input_shape(self) -> tuple[int, ...]:
        return (self._input_dim,)

    @property
    def target_shape(self) -> tuple[int, ...]:
        return (self._output_dim,)

    def generate_all(self) -> TensorDataset:
        """Materialise every sample into a ``TensorDataset``."""
        inputs: list[float] = []
        targets: list[float] = []
        for index in range(self._num_samples):
            sample_input, sample_target = self._generate(index)
            inputs.extend(sample_input.data)
            targets.extend(sample_target.data)
        return TensorDataset(
            Tensor(inputs, (self._num_samples, self._input_dim)),
            Tensor(targets, (self._num_samples, self._output_dim)),
        )

    def _generate(self, index: int) -> tuple[Tensor, Tensor]:
        rng = random.Random(self._seed + index)

        def noise() -> float:
            return rng.gauss(0.0, self._noise_level)

        def uniform() -> float:
            return rng.uniform(-1.0, 1.0)

        inputs = [0.0] * self._input_dim
        targets = [0.0] * self._output_dim
        params = self._parameters
        kind = self._data_type

        if kind is DataType.LINEAR_REGRESSION:
            x = inputs[0] = uniform() * 2.0
            targets[0] = params[0] * x + params[1] + noise()
        elif kind is DataType.POLYNOMIAL_REGRESSION:
            x = inputs[0] = uniform() * 2.0
            targets[0] = params[0] * x * x + params[1] * x + params[2] + noise()
        elif kind is DataType.SINE_WAVE:
            x = inputs[0] = uniform() * 4.0 * _PI
            targets[0] = params[0] * math.sin(params[1] * x + params[2]) + noise()
        elif kind is DataType.BINARY_CLASSIFICATION:
            inputs = [uniform() * 4.0 - 2.0 for _ in inputs]
            if sum(inputs) > 0:
                targets[1] = 1.0
            else:
                targets[0] = 1.0
        elif kind is DataType.MULTICLASS_CLASSIFICATION:
            inputs = [uniform() * 4.0 - 2.0 for _ in inputs]
            distance = math.sqrt(sum(v * v for v in inputs))
            class_id = min(int(distance * self._output_dim / 3.0), self._output_dim - 1)
            targets[class_id] = 1.0
        elif kind is DataType.SPIRAL:
            t = index / self._num_samples * 4.0 * _PI
            r = t / (4.0 * _PI)
            inputs[0] = r * math.cos(t) + noise() * 0.1
            inputs[1] = r * math.sin(t) + noise() * 0.1
            per_class = self._num_samples // self._output_dim
            targets[(index // per_class) % self._output_dim] = 1.0

        return Tensor(inputs, (self._input_dim,)), Tensor(targets, (self._output_dim,))