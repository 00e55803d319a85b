"""Dense float tensors with reverse-mode automatic differentiation."""

from __future__ import annotations

import itertools
import math
import operator
import random
from collections.abc import Callable, Sequence
from numbers import Real

GradFunction = Callable[["Tensor"], Sequence["Tensor"]]


def _row_major_strides(shape: Sequence[int]) -> tuple[int, ...]:
    strides = []
    step = 1
    for dim in reversed(shape):
        strides.append(step)
        step *= dim
    return tuple(reversed(strides))


def _flatten(data) -> tuple[list[float], tuple[int, ...]]:
    """Flatten nested sequences, returning the values and the inferred shape."""
    if isinstance(data, (str, bytes)):
        raise TypeError("tensor data must be numeric")
    if isinstance(data, Real):
        return [float(data)], ()
    items = list(data)
    if not items:
        return [], (0,)
    if all(isinstance(item, Real) for item in items):
        return [float(item) for item in items], (len(items),)
    parts = [_flatten(item) for item in items]
    inner = parts[0][1]
    if any(shape != inner for _, shape in parts):
        raise ValueError("nested tensor data is ragged")
    return [value for values, _ in parts for value in values], (len(items), *inner)


def _broadcast_shape(a: tuple[int, ...], b: tuple[int, ...]) -> tuple[int, ...]:
    result = []
    for x, y in itertools.zip_longest(reversed(a), reversed(b), fillvalue=1):
        if x == y or y == 1:
            result.append(x)
        elif x == 1:
            result.append(y)
        else:
            raise ValueError(f"shapes {list(a)} and {list(b)} cannot be broadcast together")
    return tuple(reversed(result))


def _broadcast_map(src: tuple[int, ...], out: tuple[int, ...]) -> list[int]:
    """For every flat position of ``out``, the flat position of ``src`` it reads."""
    pad = len(out) - len(src)
    strides = _row_major_strides(src)
    effective = [0] * pad + [0 if dim == 1 else stride for dim, stride in zip(src, strides)]
    return [
        sum(i * s for i, s in zip(index, effective))
        for index in itertools.product(*map(range, out))
    ]


def _divide(a: float, b: float) -> float:
    """IEEE-style division: dividing by zero yields an infinity or NaN."""
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _transpose(data: Sequence[float], rows: int, cols: int) -> list[float]:
    return [data[r * cols + c] for c in range(cols) for r in range(rows)]


def _matmul(a: Sequence[float], b: Sequence[float], m: int, k: int, n: int) -> list[float]:
    rows = [a[r * k:(r + 1) * k] for r in range(m)]
    cols = [b[j::n] for j in range(n)]
    return [sum(x * y for x, y in zip(row, col)) for row in rows for col in cols]


_ADD = (operator.add, lambda g, a, b: g, lambda g, a, b: g)
_SUB = (operator.sub, lambda g, a, b: g, lambda g, a, b: -g)
_MUL = (operator.mul, lambda g, a, b: g * b, lambda g, a, b: g * a)
_DIV = (_divide, lambda g, a, b: _divide(g, b), lambda g, a, b: _divide(-g * a, b * b))


def _coerce(value) -> "Tensor | None":
    if isinstance(value, Tensor):
        return value
    if isinstance(value, Real):
        return Tensor([float(value)], (1,))
    return None


class Tensor:
    """A row-major tensor of floats that can track gradients."""

    def __init__(self, data=None, shape=None, requires_grad=False):
        if data is None:
            dims = tuple(shape) if shape is not None else ()
            values = [0.0] * math.prod(dims) if dims else []
        else:
            if isinstance(data, Real):
                values, inferred = [float(data)], (1,)
            else:
                values, inferred = _flatten(data)
            dims = inferred if shape is None else tuple(shape)
        dims = tuple(int(dim) for dim in dims)
        if any(dim < 0 for dim in dims):
            raise ValueError(f"shape {list(dims)} has a negative dimension")
        expected = math.prod(dims) if dims else 0
        if expected != len(values):
            raise ValueError(
                f"data of size {len(values)} does not match shape {list(dims)}"
            )
        self._data: list[float] = values
        self._shape = dims
        self._strides = _row_major_strides(dims)
        self._requires_grad = False
        self._grad: list[float] = []
        self._grad_parents: list[Tensor] = []
        self._grad_fn: GradFunction | None = None
        self.requires_grad = bool(requires_grad)

    # ----- storage and shape -------------------------------------------------

    @property
    def data(self) -> list[float]:
        """The live flat storage of the tensor."""
        return self._data

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def strides(self) -> tuple[int, ...]:
        return self._strides

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def empty(self) -> bool:
        return not self._data

    def __len__(self) -> int:
        return len(self._data)

    # ----- element access ----------------------------------------------------

    def _flat(self, index) -> int:
        index = operator.index(index)
        count = len(self._data)
        if not -count <= index < count:
            raise IndexError(f"index {index} out of range for tensor of size {count}")
        return index % count

    def _offset(self, indices) -> int:
        indices = tuple(operator.index(i) for i in indices)
        if len(indices) != len(self._shape):
            raise ValueError(
                f"expected {len(self._shape)} indices, got {len(indices)}"
            )
        for position, dim in zip(indices, self._shape):
            if not 0 <= position < dim:
                raise IndexError(f"index {list(indices)} out of range for shape {list(self._shape)}")
        return sum(i * s for i, s in zip(indices, self._strides))

    def __getitem__(self, index) -> float:
        return self._data[self._flat(index)]

    def __setitem__(self, index, value) -> None:
        self._data[self._flat(index)] = float(value)

    def at(self, indices) -> float:
        """Element at a multi-dimensional index."""
        return self._data[self._offset(indices)]

    def set_at(self, indices, value) -> None:
        """Set the element at a multi-dimensional index."""
        self._data[self._offset(indices)] = float(value)

    # ----- autograd plumbing -------------------------------------------------

    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)
        if self._requires_grad:
            if len(self._grad) != len(self._data):
                self._grad = [0.0] * len(self._data)
        else:
            self._grad = []

    @property
    def grad(self) -> list[float]:
        return self._grad

    def set_grad_fn(self, grad_fn: GradFunction, parents) -> None:
        """Attach the function mapping this tensor's gradient to its parents'."""
        self._grad_fn = grad_fn
        self._grad_parents = list(parents)

    @property
    def has_grad_fn(self) -> bool:
        return self._grad_fn is not None

    @property
    def num_grad_parents(self) -> int:
        return len(self._grad_parents)

    def _attach(self, parents: Sequence["Tensor"], grad_fn: GradFunction) -> "Tensor":
        if any(parent._requires_grad for parent in parents):
            self.requires_grad = True
            self.set_grad_fn(grad_fn, parents)
        return self

    def _graph_order(self) -> list["Tensor"]:
        visited: set[int] = set()
        order: list[Tensor] = []
        stack: list[tuple[Tensor, bool]] = [(self, False)]
        while stack:
            node, finished = stack.pop()
            if finished:
                order.append(node)
                continue
            if id(node) in visited:
                continue
            visited.add(id(node))
            stack.append((node, True))
            stack.extend((p, False) for p in node._grad_parents if id(p) not in visited)
        return order

    def backward(self) -> None:
        """Propagate gradients from this tensor to every tensor it depends on."""
        if not self._requires_grad:
            raise RuntimeError("backward called on a tensor that does not require grad")
        pending: dict[int, list[float]] = {id(self): [1.0] * len(self._data)}
        for node in reversed(self._graph_order()):
            gradient = pending.pop(id(node), None)
            if gradient is None:
                continue
            if node._requires_grad:
                node._grad = [old + new for old, new in zip(node._grad, gradient)]
            if node._grad_fn is None:
                continue
            parent_grads = node._grad_fn(Tensor(gradient, node._shape))
            for parent, parent_grad in zip(node._grad_parents, parent_grads):
                if not parent._requires_grad:
                    continue
                current = pending.get(id(parent))
                if current is None:
                    pending[id(parent)] = list(parent_grad._data)
                else:
                    pending[id(parent)] = [a + b for a, b in zip(current, parent_grad._data)]

    def zero_grad(self) -> None:
        if self._requires_grad:
            self._grad = [0.0] * len(self._data)

    # ----- arithmetic --------------------------------------------------------

    def _binary(self, other: "Tensor", rule) -> "Tensor":
        op, grad_left, grad_right = rule
        for operand in (self, other):
            if not operand._shape:
                raise ValueError("operation on a tensor without a shape")
        out_shape = _broadcast_shape(self._shape, other._shape)
        left_map = _broadcast_map(self._shape, out_shape)
        right_map = _broadcast_map(other._shape, out_shape)
        a, b = list(self._data), list(other._data)
        result = Tensor([op(a[i], b[j]) for i, j in zip(left_map, right_map)], out_shape)
        left_shape, right_shape = self._shape, other._shape

        def grad_fn(grad: Tensor) -> list[Tensor]:
            left_grad = [0.0] * len(a)
            right_grad = [0.0] * len(b)
            for g, i, j in zip(grad._data, left_map, right_map):
                left_grad[i] += grad_left(g, a[i], b[j])
                right_grad[j] += grad_right(g, a[i], b[j])
            return [Tensor(left_grad, left_shape), Tensor(right_grad, right_shape)]

        return result._attach([self, other], grad_fn)

    def _forward(self, other, rule):
        other = _coerce(other)
        if other is None:
            return NotImplemented
        return self._binary(other, rule)

    def _reflected(self, other, rule):
        other = _coerce(other)
        if other is None:
            return NotImplemented
        return other._binary(self, rule)

    def __add__(self, other):
        return self._forward(other, _ADD)

    def __radd__(self, other):
        return self._reflected(other, _ADD)

    def __sub__(self, other):
        return self._forward(other, _SUB)

    def __rsub__(self, other):
        return self._reflected(other, _SUB)

    def __mul__(self, other):
        return self._forward(other, _MUL)

    def __rmul__(self, other):
        return self._reflected(other, _MUL)

    def __truediv__(self, other):
        return self._forward(other, _DIV)

    def __rtruediv__(self, other):
        return self._reflected(other, _DIV)

    def _inplace(self, other, op):
        other = _coerce(other)
        if other is None:
            return NotImplemented
        if _broadcast_shape(self._shape, other._shape) != self._shape:
            raise ValueError(
                f"cannot update shape {list(self._shape)} in place with shape {list(other._shape)}"
            )
        source = _broadcast_map(other._shape, self._shape)
        self._data[:] = [op(x, other._data[j]) for x, j in zip(self._data, source)]
        return self

    def __iadd__(self, other):
        return self._inplace(other, operator.add)

    def __isub__(self, other):
        return self._inplace(other, operator.sub)

    def __imul__(self, other):
        return self._inplace(other, operator.mul)

    def __itruediv__(self, other):
        return self._inplace(other, _divide)

    # ----- linear algebra ----------------------------------------------------

    def matmul(self, other: "Tensor") -> "Tensor":
        """Matrix product of two 2-D tensors."""
        if not isinstance(other, Tensor):
            raise TypeError("matmul expects a Tensor")
        if self.ndim != 2 or other.ndim != 2:
            raise ValueError("matmul requires two 2-D tensors")
        m, k = self._shape
        inner, n = other._shape
        if k != inner:
            raise ValueError(
                f"cannot multiply shapes {list(self._shape)} and {list(other._shape)}"
            )
        a, b = list(self._data), list(other._data)
        result = Tensor(_matmul(a, b, m, k, n), (m, n))

        def grad_fn(grad: Tensor) -> list[Tensor]:
            g = grad._data
            left = _matmul(g, _transpose(b, k, n), m, n, k)
            right = _matmul(_transpose(a, m, k), g, k, m, n)
            return [Tensor(left, (m, k)), Tensor(right, (k, n))]

        return result._attach([self, other], grad_fn)

    def __matmul__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return self.matmul(other)

    def reshape(self, new_shape) -> "Tensor":
        """The same values viewed with a different shape."""
        new_shape = tuple(new_shape)
        if math.prod(new_shape) != len(self._data) or not new_shape:
            raise ValueError(
                f"cannot reshape tensor of size {len(self._data)} into {list(new_shape)}"
            )
        original = self._shape
        result = Tensor(list(self._data), new_shape)
        return result._attach([self], lambda grad: [Tensor(list(grad._data), original)])

    def transpose(self) -> "Tensor":
        """Swap the two axes of a matrix; a vector is returned unchanged."""
        if self.ndim == 1:
            shape = self._shape
            result = Tensor(list(self._data), shape)
            return result._attach([self], lambda grad: [Tensor(list(grad._data), shape)])
        if self.ndim != 2:
            raise ValueError("transpose requires a 1-D or 2-D tensor")
        rows, cols = self._shape
        result = Tensor(_transpose(self._data, rows, cols), (cols, rows))
        return result._attach(
            [self], lambda grad: [Tensor(_transpose(grad._data, cols, rows), (rows, cols))]
        )

    # ----- reductions --------------------------------------------------------

    def _normalize_axis(self, axis: int) -> int:
        ndim = self.ndim
        if not -ndim <= axis < ndim:
            raise ValueError(f"axis {axis} out of range for tensor with {ndim} dimensions")
        return axis % ndim

    def sum(self, axis=None) -> "Tensor":
        """Sum of all elements, or along one axis."""
        shape = self._shape
        if axis is None:
            result = Tensor([sum(self._data)], (1,))
            count = len(self._data)
            return result._attach([self], lambda grad: [Tensor([grad._data[0]] * count, shape)])
        axis = self._normalize_axis(axis)
        kept = shape[:axis] + (1,) + shape[axis + 1:]
        mapping = _broadcast_map(kept, shape)
        values = [0.0] * math.prod(kept)
        for value, target in zip(self._data, mapping):
            values[target] += value
        out_shape = shape[:axis] + shape[axis + 1:] or (1,)
        result = Tensor(values, out_shape)
        return result._attach(
            [self], lambda grad: [Tensor([grad._data[t] for t in mapping], shape)]
        )

    def mean(self, axis=None) -> "Tensor":
        """Mean of all elements, or along one axis."""
        count = len(self._data) if axis is None else self._shape[self._normalize_axis(axis)]
        if count == 0:
            raise ValueError("mean of an empty tensor")
        return self.sum(axis) / float(count)

    # ----- filling -----------------------------------------------------------

    def fill(self, value: float) -> None:
        self._data[:] = [float(value)] * len(self._data)

    def random_normal(self, mean: float = 0.0, std: float = 1.0) -> None:
        self._data[:] = [random.gauss(mean, std) for _ in self._data]

    def random_uniform(self, low: float = 0.0, high: float = 1.0) -> None:
        self._data[:] = [random.uniform(low, high) for _ in self._data]

    # ----- conversion --------------------------------------------------------

    def tolist(self):
        """Values as nested lists following the shape."""

        def build(values: list[float], shape: tuple[int, ...]):
            if len(shape) <= 1:
                return list(values)
            step = math.prod(shape[1:])
            return [build(values[i * step:(i + 1) * step], shape[1:]) for i in range(shape[0])]

        return build(self._data, self._shape)

    def __str__(self) -> str:
        return f"Tensor({self.tolist()}, shape={list(self._shape)})"

    def __repr__(self) -> str:
        suffix = ", requires_grad=True" if self._requires_grad else ""
        return f"Tensor({self.tolist()}, shape={list(self._shape)}{suffix})"

    # ----- factories ---------------------------------------------------------

    @staticmethod
    def zeros(shape, requires_grad=False) -> "Tensor":
        return Tensor.full(shape, 0.0, requires_grad)

    @staticmethod
    def ones(shape, requires_grad=False) -> "Tensor":
        return Tensor.full(shape, 1.0, requires_grad)

    @staticmethod
    def full(shape, value, requires_grad=False) -> "Tensor":
        shape = tuple(shape)
        return Tensor([float(value)] * math.prod(shape), shape, requires_grad)

    @staticmethod
    def eye(n, requires_grad=False) -> "Tensor":
        values = [1.0 if row == col else 0.0 for row in range(n) for col in range(n)]
        return Tensor(values, (n, n), requires_grad)

    @staticmethod
    def randn(shape, requires_grad=False) -> "Tensor":
        tensor = Tensor.zeros(shape)
        tensor.random_normal()
        tensor.requires_grad = requires_grad
        return tensor

    @staticmethod
    def rand(shape, requires_grad=False) -> "Tensor":
        tensor = Tensor.zeros(shape)
        tensor.random_uniform()
        tensor.requires_grad = requires_grad
        return tensor