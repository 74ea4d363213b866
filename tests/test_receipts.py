"""
Receipt Tests

dual_hash, merkle roots and the bounded receipt journal.
"""

import json

from receipts import ReceiptJournal, dual_hash, emit_receipt, merkle, state_hash


class TestHashing:
    """Tests for dual_hash, state_hash and merkle."""

    def test_dual_hash_format(self):
        """SHA256 and BLAKE3 hex digests joined by a colon."""
        sha, b3 = dual_hash("ecosystem").split(":")
        assert len(sha) == 64 and len(b3) == 64

    def test_state_hash_ignores_key_order(self):
        """Canonical JSON makes the hash independent of key order."""
        assert state_hash({"a": 1, "b": 2}) == state_hash({"b": 2, "a": 1})

    def test_merkle(self):
        """Empty, single and odd-length inputs all produce a root."""
        assert merkle([]) == dual_hash(b"empty")
        assert merkle([{"x": 1}]) == dual_hash(json.dumps({"x": 1}, sort_keys=True))
        assert merkle([1, 2, 3]) != merkle([1, 2])


class TestJournal:
    """Tests for emit_receipt and ReceiptJournal."""

    def test_emit_receipt(self):
        """Receipts carry type, tenant and payload hash."""
        receipt = emit_receipt("tick", {"cycle": 4})
        assert receipt["receipt_type"] == "tick"
        assert receipt["tenant_id"] == "ecosystem"
        assert receipt["cycle"] == 4
        assert ":" in receipt["payload_hash"]

    def test_bounded(self):
        """Only the newest maxlen receipts are kept."""
        journal = ReceiptJournal(maxlen=3)
        for cycle in range(5):
            journal.record("tick", {"cycle": cycle})
        assert len(journal) == 3
        assert [r["cycle"] for r in journal.recent()] == [2, 3, 4]

    def test_filter_by_type(self):
        """recent() filters by receipt type."""
        journal = ReceiptJournal()
        journal.record("tick", {"cycle": 1})
        journal.record("state_saved", {"cycle": 1})
        assert [r["receipt_type"] for r in journal.recent("state_saved")] == ["state_saved"]

    def test_jsonl_sink(self, tmp_path):
        """A journal path mirrors every receipt as a JSON line."""
        path = tmp_path / "logs" / "receipts.jsonl"
        journal = ReceiptJournal(path=path)
        journal.record("runner_start", {"cycle": 1})
        journal.record("runner_stop", {"cycle": 9})
        lines = path.read_text().splitlines()
        assert [json.loads(line)["receipt_type"] for line in lines] == ["runner_start", "runner_stop"]

    def test_root_changes(self):
        """The journal root moves as receipts are added."""
        journal = ReceiptJournal()
        empty = journal.root()
        journal.record("tick", {"cycle": 1})
        assert journal.root() != empty
