"""Datasets read from delimited text files."""

from __future__ import annotations

import io
import os
import re
import sys
from collections.abc import Iterator, Sequence
from typing import TextIO

from kotml.data.datasets import Dataset
from kotml.tensor import Tensor

_WHITESPACE = " \t\r\n"

# Longest numeric prefix accepted, mirroring a lenient string-to-float conversion.
_FLOAT_PREFIX = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def parse_csv_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one line into trimmed cells.

    Double quotes toggle quoting and are dropped; the delimiter inside quotes
    is kept as text. A line always yields at least one cell.
    """
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current).strip(_WHITESPACE))
            current = []
        else:
            current.append(char)
    cells.append("".join(current).strip(_WHITESPACE))
    return cells


def _parse_float(text: str) -> float:
    if not text:
        return 0.0
    match = _FLOAT_PREFIX.match(text.lstrip(_WHITESPACE))
    if match is None:
        raise ValueError(f"Cannot convert '{text}' to float")
    return float(match.group(0))


def _lines(path: str) -> Iterator[str]:
    """Lines split on newline only, without a phantom line after a final newline."""
    try:
        with open(path, encoding="utf-8", newline="") as handle:
            content = handle.read()
    except OSError as exc:
        raise FileNotFoundError(f"Cannot open CSV file: {path}") from exc
    if not content:
        return iter(())
    parts = content.split("\n")
    if content.endswith("\n"):
        parts.pop()
    return iter(parts)


def _column_names(columns: Sequence[int], headers: Sequence[str]) -> list[str]:
    return [
        headers[col] if col < len(headers) else f"Column_{col}"
        for col in columns
    ]


class CSVDataset(Dataset):
    """Numeric samples read from a delimited text file.

    Without explicit columns, every column but the last is an input and the
    last is the target.
    """

    def __init__(self, filename, input_columns=None, target_columns=None,
                 has_header=True, delimiter=",", skip_rows=0):
        if not isinstance(delimiter, str) or len(delimiter) != 1:
            raise ValueError("Delimiter must be a single character")
        if skip_rows < 0:
            raise ValueError("skip_rows cannot be negative")
        self._filename = os.fspath(filename)
        self._has_header = bool(has_header)
        self._delimiter = delimiter
        self._headers: list[str] = []
        self._rows: list[list[float]] = []

        if input_columns is None and target_columns is None:
            inputs, targets = self._detect_columns(int(skip_rows))
        elif input_columns is None or target_columns is None:
            raise ValueError("input_columns and target_columns must be given together")
        else:
            inputs, targets = list(input_columns), list(target_columns)
            if not inputs:
                raise ValueError("Input columns cannot be empty")
            if not targets:
                raise ValueError("Target columns cannot be empty")
            if any(col < 0 for col in inputs + targets):
                raise ValueError("Column indices cannot be negative")
        self._input_columns = tuple(int(col) for col in inputs)
        self._target_columns = tuple(int(col) for col in targets)
        self._load(int(skip_rows))

    # ----- loading -----------------------------------------------------------

    def _detect_columns(self, skip_rows: int) -> tuple[list[int], list[int]]:
        lines = _lines(self._filename)
        if self._has_header:
            next(lines, None)
        for _ in range(skip_rows):
            if next(lines, None) is None:
                break
        first = next(lines, None)
        if first is None:
            raise ValueError(f"No data found in CSV file: {self._filename}")
        count = len(parse_csv_line(first, self._delimiter))
        if count < 2:
            raise ValueError("CSV file must have at least 2 columns (input and target)")
        return list(range(count - 1)), [count - 1]

    def _load(self, skip_rows: int) -> None:
        lines = _lines(self._filename)
        line_number = 0
        if self._has_header:
            header = next(lines, None)
            if header is not None:
                self._headers = parse_csv_line(header, self._delimiter)
                line_number += 1
        for _ in range(skip_rows):
            if next(lines, None) is None:
                break
            line_number += 1

        rows: list[list[float]] = []
        for line in lines:
            if not line:
                continue
            values = parse_csv_line(line, self._delimiter)
            try:
                row = [_parse_float(value) for value in values]
            except ValueError as exc:
                raise ValueError(f"Error parsing line {line_number + 1}: {exc}") from exc
            self._validate_columns(len(row), line_number + 1)
            rows.append(row)
            line_number += 1

        if not rows:
            raise ValueError(f"No valid data found in CSV file: {self._filename}")
        self._rows = rows

    def _validate_columns(self, num_columns: int, line_number: int) -> None:
        for kind, columns in (("Input", self._input_columns), ("Target", self._target_columns)):
            for col in columns:
                if col >= num_columns:
                    raise ValueError(
                        f"{kind} column index {col} out of range at line {line_number}"
                        f" (available columns: 0-{num_columns - 1})"
                    )

    # ----- dataset interface -------------------------------------------------

    def get_item(self, index: int) -> tuple[Tensor, Tensor]:
        self.validate_index(index)
        row = self._rows[index]
        inputs = [row[col] for col in self._input_columns]
        targets = [row[col] for col in self._target_columns]
        return (
            Tensor(inputs, (len(inputs),)),
            Tensor(targets, (len(targets),)),
        )

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def name(self) -> str:
        return f"CSVDataset({self._filename})"

    @property
    def input_shape(self) -> tuple[int, ...]:
        return (len(self._input_columns),)

    @property
    def target_shape(self) -> tuple[int, ...]:
        return (len(self._target_columns),)

    # ----- metadata ----------------------------------------------------------

    @property
    def headers(self) -> tuple[str, ...]:
        return tuple(self._headers)

    @property
    def input_columns(self) -> tuple[int, ...]:
        return self._input_columns

    @property
    def target_columns(self) -> tuple[int, ...]:
        return self._target_columns

    @property
    def input_column_names(self) -> list[str]:
        return _column_names(self._input_columns, self._headers)

    @property
    def target_column_names(self) -> list[str]:
        return _column_names(self._target_columns, self._headers)

    def info(self) -> str:
        """A human-readable summary of the dataset."""
        out = io.StringIO()
        out.write("CSV Dataset Information:\n")
        out.write(f"  File: {self._filename}\n")
        out.write(f"  Samples: {len(self)}\n")
        out.write(f"  Input features: {len(self._input_columns)}\n")
        out.write(f"  Target features: {len(self._target_columns)}\n")
        out.write(f"  Has header: {'Yes' if self._has_header else 'No'}\n")
        out.write(f"  Delimiter: '{self._delimiter}'\n")
        if self._headers:
            out.write(f"  Headers: {', '.join(self._headers)}\n")
        out.write(f"  Input columns: {', '.join(map(str, self._input_columns))}\n")
        out.write(f"  Target columns: {', '.join(map(str, self._target_columns))}\n")
        return out.getvalue()

    def print_info(self, stream: TextIO | None = None) -> None:
        """Write the summary to ``stream`` (standard output by default)."""
        (stream if stream is not None else sys.stdout).write(self.info())