# src/mftagent_runner/log_tailer.py
# LogTailer - echoes the agent's output0.log to the console

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Callable, Iterator, Optional, TextIO

logger = logging.getLogger(__name__)

BANNER = (
    "=======================================================================",
    "============================= Agent logs ==============================",
    "=======================================================================",
)


def _echo(line: str) -> None:
    print(line, flush=True)


class LogRingBuffer:
    """The most recent ``capacity`` lines, oldest dropped first."""

    def __init__(self, capacity: int):
        self._lines: deque[str] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._lines.maxlen or 0

    def append(self, line: str) -> None:
        self._lines.append(line)

    def drain(self) -> list[str]:
        """Return the buffered lines in file order and empty the buffer."""
        lines = list(self._lines)
        self._lines.clear()
        return lines

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)


class LogTailer:
    """Shows the last lines of the agent log, then follows new output.

    Runs as its own task for as long as the supervisor lives and only ever
    reads the file. File reads happen in a worker thread so a busy log never
    holds up the event loop. A log that cannot be opened is reported once
    and the tailer then does nothing.
    """

    def __init__(
        self,
        log_file: Path,
        display_lines: int,
        output: Optional[Callable[[str], None]] = None,
        idle_delay: float = 0.5,
        batch_size: int = 500,
    ):
        """Initialize LogTailer.

        Args:
            log_file: Path to the agent's output0.log
            display_lines: Number of existing lines to show before following
            output: Receives each log line; defaults to stdout
            idle_delay: Pause between read attempts once at end of file
            batch_size: Most lines read from the file before they are printed
        """
        self.log_file = Path(log_file)
        self.buffer = LogRingBuffer(display_lines)
        self.output = output or _echo
        self.idle_delay = idle_delay
        self.batch_size = batch_size
        self._partial = ""

    async def run(self) -> None:
        try:
            f = await asyncio.to_thread(open, self.log_file, "r", errors="replace")
        except OSError as e:
            logger.error(f"Error opening agent log file {self.log_file}: {e}")
            return

        with f:
            await asyncio.to_thread(self._read_backlog, f)
            for line in BANNER:
                self.output(line)
            for line in self.buffer.drain():
                self.output(line)
            await self._follow(f)

    def _next_line(self, f: TextIO) -> Optional[str]:
        """Read one complete line, keeping a partial last line for later."""
        chunk = f.readline()
        while chunk:
            self._partial += chunk
            if self._partial.endswith("\n"):
                line = self._partial.rstrip("\r\n")
                self._partial = ""
                return line
            chunk = f.readline()
        return None

    def _read_backlog(self, f: TextIO) -> None:
        while True:
            line = self._next_line(f)
            if line is None:
                break
            self.buffer.append(line)
        # The last line of the existing log is shown even without a newline
        if self._partial:
            self.buffer.append(self._partial.rstrip("\r"))
            self._partial = ""

    def _read_batch(self, f: TextIO) -> list[str]:
        lines = []
        while len(lines) < self.batch_size:
            line = self._next_line(f)
            if line is None:
                break
            lines.append(line)
        return lines

    async def _follow(self, f: TextIO) -> None:
        while True:
            lines = await asyncio.to_thread(self._read_batch, f)
            if not lines:
                await asyncio.sleep(self.idle_delay)
                continue
            for line in lines:
                self.output(line)
