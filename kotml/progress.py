"""Text progress bar for training loops."""

from __future__ import annotations

import sys
from typing import TextIO


class ProgressBar:
    """Training progress display.

    With ``total_samples`` set, each epoch gets a header line followed by a
    bar that is redrawn as samples advance::

        Epoch 5 / 12
        [=============.......] 65 / 100 loss: 1.488

    Without it, a single line tracks epoch progress.
    """

    def __init__(self, total_epochs, total_samples=0, bar_width=20, stream=None):
        if total_epochs < 1:
            raise ValueError("total_epochs must be positive")
        if total_samples < 0:
            raise ValueError("total_samples cannot be negative")
        if bar_width < 1:
            raise ValueError("bar_width must be positive")
        self._total_epochs = int(total_epochs)
        self._total_samples = int(total_samples)
        self._bar_width = int(bar_width)
        self._stream = stream
        self._epoch = 0
        self._sample = 0
        self._loss = 0.0
        self._header_epoch: int | None = None
        self._line_open = False

    @property
    def _show_samples(self) -> bool:
        return self._total_samples > 0

    def _out(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _write(self, text: str) -> None:
        out = self._out()
        out.write(text)
        out.flush()

    def update(self, epoch, loss, sample=None) -> None:
        """Record progress and redraw; pass ``sample`` for mini-batch training."""
        self._epoch = int(epoch)
        self._loss = float(loss)
        if sample is not None:
            self._sample = int(sample)
        self._display()

    def finish_epoch(self) -> None:
        """End the current epoch's line."""
        if self._line_open:
            self._write("\n")
            self._line_open = False

    def finish(self) -> None:
        """End the display with a final newline."""
        self.finish_epoch()

    def _bar(self, done: int, total: int) -> str:
        fraction = min(max(done / total, 0.0), 1.0) if total else 0.0
        filled = int(fraction * self._bar_width)
        return "[" + "=" * filled + "." * (self._bar_width - filled) + "]"

    def _header(self) -> str:
        return f"Epoch {self._epoch} / {self._total_epochs}"

    def _status(self) -> str:
        if self._show_samples:
            bar = self._bar(self._sample, self._total_samples)
            return f"{bar} {self._sample} / {self._total_samples} loss: {self._loss:.3f}"
        bar = self._bar(self._epoch, self._total_epochs)
        return f"{self._header()} {bar} loss: {self._loss:.3f}"

    def render(self) -> str:
        """The text of the current state, without terminal control characters."""
        if self._show_samples:
            return f"{self._header()}\n{self._status()}"
        return self._status()

    def _display(self) -> None:
        if self._show_samples and self._header_epoch != self._epoch:
            if self._line_open:
                self._write("\n")
            self._write(self._header() + "\n")
            self._header_epoch = self._epoch
        self._write("\r" + self._status())
        self._line_open = True