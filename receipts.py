"""
receipts.py - Ecosystem Audit Trail

Structured event receipts for the runner and storage layer. Every receipt
carries receipt_type, ts, tenant_id and payload_hash.

Hashes are always dual_hash (SHA256:BLAKE3).
"""

import hashlib
import json
import threading
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Union

import blake3

from ecosystem.constants import TENANT_ID

__all__ = [
    "dual_hash",
    "emit_receipt",
    "write_receipt_jsonl",
    "merkle",
    "state_hash",
    "ReceiptJournal",
    "RECEIPT_SCHEMA",
]

# =============================================================================
# CONSTANTS
# =============================================================================

RECEIPT_SCHEMA = {
    "receipt_type": "str",
    "ts": "ISO8601",
    "tenant_id": "str",
    "payload_hash": "str (SHA256:BLAKE3)",
}

JOURNAL_MAXLEN = 500


# =============================================================================
# CORE FUNCTION 1: dual_hash
# =============================================================================

def dual_hash(data: Union[bytes, str]) -> str:
    """
    SHA256:BLAKE3 digest pair.

    Args:
        data: Bytes or string to hash

    Returns:
        str: "sha256_hex:blake3_hex" format
    """
    if isinstance(data, str):
        data = data.encode()
    sha = hashlib.sha256(data).hexdigest()
    b3 = blake3.blake3(data).hexdigest()
    return f"{sha}:{b3}"


def state_hash(state_dict: Dict[str, Any]) -> str:
    """dual_hash of the canonical (sorted, compact) JSON form of a state."""
    return dual_hash(json.dumps(state_dict, sort_keys=True, separators=(",", ":")))


# =============================================================================
# CORE FUNCTION 2: emit_receipt
# =============================================================================

def emit_receipt(receipt_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a receipt for one event.

    Args:
        receipt_type: Type identifier (runner_start, tick, state_saved, ...)
        data: Payload; tenant_id defaults to the ecosystem tenant

    Returns:
        dict: Receipt with ts, tenant_id, payload_hash and the payload fields
    """
    return {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        "tenant_id": data.get("tenant_id", TENANT_ID),
        "payload_hash": dual_hash(json.dumps(data, sort_keys=True, default=str)),
        **data,
    }


# =============================================================================
# CORE FUNCTION 3: write_receipt_jsonl
# =============================================================================

def write_receipt_jsonl(receipt: Dict[str, Any], fh) -> None:
    """
    Append receipt as single JSON line to file handle.

    Args:
        receipt: Receipt dict to write
        fh: File handle (must be open for writing)
    """
    line = json.dumps(receipt, separators=(",", ":"), default=str)
    fh.write(line + "\n")


# =============================================================================
# CORE FUNCTION 4: merkle
# =============================================================================

def merkle(items: List[Any]) -> str:
    """
    Compute Merkle root of items.

    Args:
        items: List of items to merkle (will be JSON serialized)

    Returns:
        str: Merkle root hash in dual_hash format
    """
    if not items:
        return dual_hash(b"empty")
    hashes = [dual_hash(json.dumps(i, sort_keys=True)) for i in items]
    while len(hashes) > 1:
        if len(hashes) % 2:
            hashes.append(hashes[-1])
        hashes = [dual_hash(hashes[i] + hashes[i + 1])
                  for i in range(0, len(hashes), 2)]
    return hashes[0]


# =============================================================================
# JOURNAL
# =============================================================================

class ReceiptJournal:
    """Bounded in-memory receipt history with an optional JSONL sink.

    Thread-safe: the runner loop and the save worker both record into it.
    """

    def __init__(self, maxlen: int = JOURNAL_MAXLEN, path: Optional[Union[str, Path]] = None):
        self._receipts: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self.path = Path(path) if path else None

    def record(self, receipt_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        receipt = emit_receipt(receipt_type, data)
        with self._lock:
            self._receipts.append(receipt)
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as fh:
                    write_receipt_jsonl(receipt, fh)
        return receipt

    def recent(self, receipt_type: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            receipts = list(self._receipts)
        if receipt_type is None:
            return receipts
        return [r for r in receipts if r["receipt_type"] == receipt_type]

    def root(self) -> str:
        """Merkle root over the retained receipts."""
        return merkle(self.recent())

    def __len__(self) -> int:
        with self._lock:
            return len(self._receipts)
