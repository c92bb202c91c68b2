# tests/test_log_tailer.py
# Tests for LogRingBuffer and LogTailer

import asyncio
import logging

import pytest

from mftagent_runner.log_tailer import BANNER, LogRingBuffer, LogTailer


class TestLogRingBuffer:
    """Tests for LogRingBuffer."""

    @pytest.mark.parametrize("capacity, seen", [(3, 0), (3, 2), (3, 3), (3, 10), (0, 4)])
    def test_keeps_most_recent_lines(self, capacity, seen):
        """Should hold min(seen, capacity) of the newest lines in order."""
        buffer = LogRingBuffer(capacity)
        lines = [f"line {i}" for i in range(seen)]

        for line in lines:
            buffer.append(line)

        expected = lines[-capacity:] if capacity else []
        assert len(buffer) == min(seen, capacity)
        assert list(buffer) == expected

    def test_drain_empties_buffer(self):
        buffer = LogRingBuffer(2)
        buffer.append("a")
        buffer.append("b")

        assert buffer.drain() == ["a", "b"]
        assert len(buffer) == 0
        assert buffer.capacity == 2


class TestLogTailer:
    """Tests for LogTailer.run()."""

    @pytest.mark.asyncio
    async def test_backlog_then_follow(self, tmp_path, wait_until):
        """Should print the last lines once and then follow new ones."""
        log_file = tmp_path / "output0.log"
        log_file.write_text("".join(f"old {i}\n" for i in range(10)))
        printed = []
        tailer = LogTailer(log_file, 3, output=printed.append, idle_delay=0.01)

        task = asyncio.create_task(tailer.run())
        try:
            await wait_until(lambda: len(printed) == len(BANNER) + 3)
            assert printed[len(BANNER):] == ["old 7", "old 8", "old 9"]

            with open(log_file, "a") as f:
                f.write("new 1\n")
                f.flush()
                f.write("new ")
                f.flush()
                await asyncio.sleep(0.05)
                f.write("2\n")

            await wait_until(lambda: len(printed) == len(BANNER) + 5)
            assert printed[-2:] == ["new 1", "new 2"]
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    @pytest.mark.asyncio
    async def test_short_log(self, tmp_path, wait_until):
        """Should print every line of a log shorter than the backlog size."""
        log_file = tmp_path / "output0.log"
        log_file.write_text("only line\n")
        printed = []
        tailer = LogTailer(log_file, 50, output=printed.append, idle_delay=0.01)

        task = asyncio.create_task(tailer.run())
        try:
            await wait_until(lambda: len(printed) == len(BANNER) + 1)
            assert printed[-1] == "only line"
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    @pytest.mark.asyncio
    async def test_missing_log(self, tmp_path, caplog):
        """Should log the error once and return without output."""
        printed = []
        tailer = LogTailer(tmp_path / "missing.log", 5, output=printed.append)

        with caplog.at_level(logging.ERROR, logger="mftagent_runner.log_tailer"):
            await asyncio.wait_for(tailer.run(), timeout=1)

        assert printed == []
        assert "Error opening agent log file" in caplog.text

    @pytest.mark.asyncio
    async def test_unterminated_last_line(self, tmp_path, wait_until):
        """Should show a last backlog line that has no newline yet."""
        log_file = tmp_path / "output0.log"
        log_file.write_text("first\nBFGAG0059I: The agent has been successfully started.")
        printed = []
        tailer = LogTailer(log_file, 5, output=printed.append, idle_delay=0.01)

        task = asyncio.create_task(tailer.run())
        try:
            await wait_until(lambda: len(printed) == len(BANNER) + 2)
            assert printed[len(BANNER):] == [
                "first",
                "BFGAG0059I: The agent has been successfully started.",
            ]
        finally:
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    @pytest.mark.asyncio
    async def test_large_backlog_keeps_loop_responsive(self, tmp_path, wait_until):
        """Should let other tasks run while a long log is being read."""
        log_file = tmp_path / "output0.log"
        with open(log_file, "w") as f:
            for i in range(300000):
                f.write(f"BFGAG0001I: transfer progress line {i}\n")
        printed = []
        tailer = LogTailer(log_file, 3, output=printed.append, idle_delay=0.01)
        loop = asyncio.get_running_loop()
        gaps = []

        async def heartbeat():
            last = loop.time()
            while True:
                await asyncio.sleep(0.01)
                now = loop.time()
                gaps.append(now - last)
                last = now

        beat = asyncio.create_task(heartbeat())
        task = asyncio.create_task(tailer.run())
        try:
            await wait_until(lambda: len(printed) == len(BANNER) + 3, timeout=30)
            assert printed[-1] == "BFGAG0001I: transfer progress line 299999"
            assert gaps
            assert max(gaps) < 0.5
        finally:
            beat.cancel()
            task.cancel()
            for pending in (beat, task):
                with pytest.raises(asyncio.CancelledError):
                    await pending
