"""Tests for the handoff channel."""

import threading

import pytest

from lxd_backup_ng.__util__ import ChannelClosedError
from lxd_backup_ng.core import HandoffChannel


class TestHandoffChannel:
    """Tests for HandoffChannel."""

    def test_items_then_close(self):
        """Test readers see every item, then the end of the stream."""
        channel = HandoffChannel()
        channel.send(1)
        channel.send(2)
        channel.close()
        assert list(channel) == [1, 2]

    def test_close_empty_channel(self):
        """Test closing without sends ends iteration immediately."""
        channel = HandoffChannel()
        channel.close()
        assert list(channel) == []
        assert channel.closed

    def test_send_after_close_raises(self):
        """Test sending on a closed channel fails."""
        channel = HandoffChannel()
        channel.close()
        with pytest.raises(ChannelClosedError):
            channel.send("late")

    def test_double_close_raises(self):
        """Test the channel can be closed only once."""
        channel = HandoffChannel()
        channel.close()
        with pytest.raises(ChannelClosedError):
            channel.close()

    def test_reader_blocks_until_close(self):
        """Test a reader started early receives items sent later."""
        channel = HandoffChannel()
        received = []
        reader = threading.Thread(target=lambda: received.extend(channel))
        reader.start()

        channel.send("a")
        channel.send("b")
        channel.close()
        reader.join(timeout=5)

        assert not reader.is_alive()
        assert received == ["a", "b"]

    def test_many_writers_many_readers(self):
        """Test every item is delivered exactly once across readers."""
        channel = HandoffChannel()
        results = [[] for _ in range(3)]
        readers = [
            threading.Thread(target=lambda out=out: out.extend(channel))
            for out in results
        ]
        for reader in readers:
            reader.start()

        writers = [
            threading.Thread(
                target=lambda base=base: [channel.send(base + i) for i in range(100)]
            )
            for base in range(0, 400, 100)
        ]
        for writer in writers:
            writer.start()
        for writer in writers:
            writer.join()
        channel.close()
        for reader in readers:
            reader.join(timeout=5)

        delivered = sorted(item for out in results for item in out)
        assert delivered == list(range(400))
