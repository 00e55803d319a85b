# kotml

kotml is a small machine-learning toolkit written in pure Python. It has no
third-party dependencies. It contains:

- `kotml.tensor.Tensor` is a row-major float tensor. It supports element-wise
  arithmetic with broadcasting and scalars, matrix multiplication, reshaping,
  transposition, sums and means, and reverse-mode automatic differentiation.
- `kotml.progress.ProgressBar` is a text progress bar for training loops.
- `kotml.data.datasets` holds the abstract `Dataset` base class, the in-memory
  `TensorDataset` and the `SyntheticDataset` generator. The generator produces
  linear, polynomial and sine regression data, and binary, multiclass and
  spiral classification data. You choose the kind with `DataType`.
- `kotml.data.csv_dataset.CSVDataset` reads numeric data from delimited text
  files. `parse_csv_line` splits a single line into cells.
- `kotml.data.loader` holds `DataLoader`, which produces mini-batches,
  `SubsetDataset`, and helper functions that build loaders.

## Installation

```
pip install .
```

To run the tests, install the test extra with `pip install .[test]` and then
run `pytest`.

## Tensors

```python
from kotml.tensor import Tensor

a = Tensor([1, 2, 3, 4, 5, 6], [2, 3])
b = Tensor([1, 2, 3, 4, 5, 6], [3, 2])

print(a @ b)              # values [[22.0, 28.0], [49.0, 64.0]], shape [2, 2]
print(a.transpose())      # shape [3, 2]
print(a.reshape([3, 2]))
print(a.sum(), a.sum(0), a.mean())

x = Tensor([2.0, 3.0], [2], requires_grad=True)
y = Tensor([1.0, 4.0], [2], requires_grad=True)
z = (x * y + x).sum()
z.backward()
print(x.grad, y.grad)     # [2.0, 5.0] [2.0, 3.0]
```

Index a tensor with an integer to get an element by flat position, for
example `t[i]`. Use `t.at((i, j))` and `t.set_at((i, j), v)` to work with
multi-dimensional indices. `tolist()` returns the values as nested lists.

The factory methods `Tensor.zeros`, `Tensor.ones`, `Tensor.full`,
`Tensor.eye`, `Tensor.randn` and `Tensor.rand` build a tensor from a shape.

## Datasets and loaders

```python
from kotml.data.datasets import SyntheticDataset, DataType
from kotml.data.loader import DataLoader, create_csv_loader

dataset = SyntheticDataset(DataType.LINEAR_REGRESSION, 100, 1, 1, 0.1, 42)
loader = DataLoader(dataset, batch_size=16, shuffle=True, seed=42)

for inputs, targets in loader:
    print(inputs.shape, targets.shape)

train_loader, val_loader = loader.train_val_split(0.8, seed=42)

csv_loader = create_csv_loader("data.csv", batch_size=32)
```

Every dataset supports `len(dataset)` and `dataset[i]`, and `dataset[i]`
returns an `(input, target)` pair. `SyntheticDataset` derives each sample from
the seed and the sample's index, so the output is reproducible.

`DataLoader` loads batches with `get_batch(i)` and loads every sample at once
with `get_all_data()`. When shuffling is enabled it reshuffles at the start of
each iteration and after `reset()` or `set_seed()`. With `drop_last` set, it
leaves out the last incomplete batch. `train_val_split` returns two loaders:
the training loader shuffles if the original loader did, and the validation
loader never shuffles.

When you give no columns, `CSVDataset` uses every column except the last as
input and the last column as the target. Its constructor also takes
`has_header`, `delimiter` and `skip_rows`.

The helper functions are `create_tensor_loader`, `create_synthetic_loader`,
`create_train_val_loaders`, `create_csv_loader` and
`create_csv_train_val_loaders`.

Errors:

- Invalid arguments, malformed CSV content and out-of-range CSV columns raise
  `ValueError`.
- Out-of-range sample or batch indices raise `IndexError`.
- A CSV file that cannot be opened raises `FileNotFoundError`.

## Progress bar

```python
from kotml.progress import ProgressBar

bar = ProgressBar(total_epochs=10, total_samples=100)
for epoch in range(1, 11):
    for sample in range(1, 101):
        bar.update(epoch, loss=0.5, sample=sample)
    bar.finish_epoch()
bar.finish()
```

`render()` returns the current state as text. The bar writes to standard
output unless you pass a `stream`.

## What is not included

kotml has no neural-network layers, loss functions, optimizers or training
loop. It gives you tensors with gradients, datasets and loaders, and you
build models and update rules on top of them yourself.