"""
Tests for the retry marker store.
"""

import threading

from buildretry.core.markers import AttachOutcome, MarkerStore
from buildretry.core.results import BuildRecord, BuildResult, Combination


class TestAttach:
    """Tests for MarkerStore.attach."""

    def test_first_attach_wins(self):
        store = MarkerStore()
        assert store.attach("build-1", "first") == AttachOutcome.ATTACHED
        assert store.attach("build-1", "second") == AttachOutcome.ALREADY_PRESENT
        assert store.get("build-1") == "first"

    def test_records_are_independent(self):
        store = MarkerStore()
        assert store.attach("build-1", "a") == AttachOutcome.ATTACHED
        assert store.attach("build-2", "b") == AttachOutcome.ATTACHED
        assert len(store) == 2

    def test_get_missing(self):
        assert MarkerStore().get("nope") is None

    def test_discard(self):
        store = MarkerStore()
        store.attach("build-1", "a")
        assert store.discard("build-1") == "a"
        assert "build-1" not in store
        assert store.discard("build-1") is None
        assert store.attach("build-1", "b") == AttachOutcome.ATTACHED

    def test_concurrent_attach(self):
        """With many racing callers exactly one attaches and its marker is kept."""
        store = MarkerStore()
        workers = 32
        barrier = threading.Barrier(workers)
        outcomes: dict[int, AttachOutcome] = {}

        def attach(n):
            barrier.wait()
            outcomes[n] = store.attach("matrix#7", n)

        threads = [threading.Thread(target=attach, args=(n,)) for n in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [n for n, outcome in outcomes.items() if outcome == AttachOutcome.ATTACHED]
        assert len(winners) == 1
        assert store.get("matrix#7") == winners[0]
        assert len(store) == 1


class TestAttachFor:
    """Fan-out members attach to their parent."""

    def test_member_attaches_to_parent(self):
        store = MarkerStore()
        member = BuildRecord(
            record_id="matrix#7/os=linux",
            result=BuildResult.FAILURE,
            parent_id="matrix#7",
            combination=Combination(os="linux"),
        )
        assert store.attach_for(member, "policy") == AttachOutcome.ATTACHED
        assert "matrix#7" in store
        assert "matrix#7/os=linux" not in store

    def test_members_share_one_marker(self):
        store = MarkerStore()
        members = [
            BuildRecord(record_id=f"matrix#7/{os}", result=BuildResult.FAILURE, parent_id="matrix#7")
            for os in ("linux", "mac", "windows")
        ]
        outcomes = [store.attach_for(m, m.record_id) for m in members]
        assert outcomes.count(AttachOutcome.ATTACHED) == 1
        assert store.get("matrix#7") == "matrix#7/linux"

    def test_standalone_attaches_to_itself(self):
        store = MarkerStore()
        store.attach_for(BuildRecord(record_id="job#3", result=BuildResult.FAILURE), "policy")
        assert store.get("job#3") == "policy"
