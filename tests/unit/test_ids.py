"""Unit tests for correlation id generators."""

import re
import threading

from rpcwire.rpc.ids import SequentialIds, random_id

UUID_SHAPE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


class TestRandomId:
    """Tests for random_id()."""

    def test_shape(self):
        """Ids are 32 hex digits grouped 8-4-4-4-12."""
        assert UUID_SHAPE.match(random_id())

    def test_unique(self):
        ids = {random_id() for _ in range(1000)}
        assert len(ids) == 1000


class TestSequentialIds:
    """Tests for SequentialIds."""

    def test_counts_from_one(self):
        ids = SequentialIds()
        assert [ids(), ids(), ids()] == ["1", "2", "3"]

    def test_prefix_and_start(self):
        ids = SequentialIds(prefix="req-", start=10)
        assert ids() == "req-10"
        assert ids() == "req-11"

    def test_thread_safe(self):
        """Concurrent callers never receive the same id."""
        ids = SequentialIds()
        seen: list[str] = []
        lock = threading.Lock()

        def worker():
            local = [ids() for _ in range(500)]
            with lock:
                seen.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 4000
        assert len(set(seen)) == 4000
