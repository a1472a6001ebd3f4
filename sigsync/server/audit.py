"""Hash-chained, bounded audit trail of exchange events.

Every entry commits to the entry before it, so editing a retained entry
breaks ``verify_chain``.  Only the newest ``max_entries`` are kept; the
hash linking the oldest retained entry to its dropped predecessor becomes
the chain anchor.

Entries never hold message text or key material.  Messages are recorded
as SHA-256 digests and keys/signatures as short fingerprints, so a
``fetch`` entry can be matched to the signature a client received.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Deque, Dict, List

from sigsync import config

GENESIS_ANCHOR = "0" * 64


@dataclass(frozen=True)
class AuditEntry:
    seq: int
    timestamp: float
    event: str
    data: Dict[str, Any]
    prev_hash: str
    entry_hash: str


def _seal(seq: int, timestamp: float, event: str, data: Dict[str, Any], prev_hash: str) -> str:
    body = json.dumps(
        {"seq": seq, "ts": timestamp, "event": event, "data": data, "prev": prev_hash},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(body.encode()).hexdigest()


def digest(text: str) -> str:
    """SHA-256 hex digest of a message.

    Lone surrogates are valid in JSON but not in UTF-8; they are hashed via
    ``surrogatepass`` so recording a hostile payload never fails.
    """
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


def signature_fingerprint(signature: bytes) -> str:
    return hashlib.sha256(signature).hexdigest()[:16]


class ExchangeAudit:
    """Bounded record of what the server signed, accepted and refused."""

    def __init__(self, max_entries: int = config.AUDIT_MAX_ENTRIES) -> None:
        self._lock = threading.Lock()
        self._entries: Deque[AuditEntry] = deque(maxlen=max_entries)
        self._anchor = GENESIS_ANCHOR
        self._head = GENESIS_ANCHOR
        self._seq = 0

    # ---- recording ----

    def _append(self, event: str, data: Dict[str, Any]) -> AuditEntry:
        with self._lock:
            self._seq += 1
            ts = time.time()
            entry = AuditEntry(
                seq=self._seq,
                timestamp=ts,
                event=event,
                data=data,
                prev_hash=self._head,
                entry_hash=_seal(self._seq, ts, event, data, self._head),
            )
            if len(self._entries) == self._entries.maxlen:
                # the next-oldest entry now links to a dropped one
                self._anchor = self._entries[0].entry_hash
            self._entries.append(entry)
            self._head = entry.entry_hash
            return entry

    def record_startup(self, algorithm: str, key_fingerprint: str) -> AuditEntry:
        return self._append("startup", {"algorithm": algorithm, "key": key_fingerprint})

    def record_fetch(self, version: int, message: str, signature: bytes) -> AuditEntry:
        return self._append("fetch", {
            "version": version,
            "digest": digest(message),
            "signature": signature_fingerprint(signature),
        })

    def record_write(self, accepted: bool, key_fingerprint: str, message: str, version: int) -> AuditEntry:
        """*version* is the new version when accepted, the unchanged one when denied."""
        return self._append("write_accepted" if accepted else "write_denied", {
            "key": key_fingerprint,
            "digest": digest(message),
            "version": version,
        })

    def record_invalid(self, error_count: int) -> AuditEntry:
        return self._append("write_rejected_invalid", {"errors": error_count})

    # ---- reading ----

    @property
    def anchor(self) -> str:
        return self._anchor

    @property
    def total(self) -> int:
        """Entries ever recorded, including ones no longer retained."""
        return self._seq

    def entries(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [asdict(e) for e in self._entries]

    def verify_chain(self) -> bool:
        """Check the retained entries link up from the anchor."""
        with self._lock:
            retained = list(self._entries)
            prev = self._anchor
        for e in retained:
            if e.prev_hash != prev:
                return False
            if e.entry_hash != _seal(e.seq, e.timestamp, e.event, e.data, e.prev_hash):
                return False
            prev = e.entry_hash
        return True
