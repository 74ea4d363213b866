"""
ecosystem/codex.py - Codex Log

Bounded narrative log of state transitions. Appends are FIFO-capped at
CODEX_MAX_ENTRIES; near-duplicate suppression happens only at query time.
"""

from typing import List, Sequence

from .constants import (
    CODEX_MAX_ENTRIES,
    CODEX_QUERY_DEFAULT,
    CODEX_SIMILARITY_THRESHOLD,
    CODEX_SIMILARITY_WINDOW,
)
from .types_state import CodexEntry, EcosystemState


def add_codex_entry(state: EcosystemState, text: str) -> CodexEntry:
    """
    Record ``text`` at the current cycle, dropping the oldest entries on overflow.

    Args:
        state: EcosystemState (mutated in place)
        text: Narrative line

    Returns:
        The appended CodexEntry
    """
    entry = CodexEntry(cycle=state.cycle, text=text)
    state.codex_entries.append(entry)
    overflow = len(state.codex_entries) - CODEX_MAX_ENTRIES
    if overflow > 0:
        del state.codex_entries[:overflow]
    return entry


def _words(text: str) -> set:
    return set(text.lower().split(" "))


def word_overlap(a: str, b: str) -> float:
    """Shared distinct words divided by the larger word-set size."""
    words_a, words_b = _words(a), _words(b)
    largest = max(len(words_a), len(words_b))
    if largest == 0:
        return 0.0
    return len(words_a & words_b) / largest


def are_similar(a: CodexEntry, b: CodexEntry) -> bool:
    if a.text == b.text:
        return True
    return word_overlap(a.text, b.text) > CODEX_SIMILARITY_THRESHOLD


def query_recent(
    entries: Sequence[CodexEntry],
    max_entries: int = CODEX_QUERY_DEFAULT,
) -> List[CodexEntry]:
    """
    Up to ``max_entries`` entries, newest first, with near-duplicates removed.

    The newest entry is always kept. Walking backwards, a candidate is skipped
    when it is similar to any of the first CODEX_SIMILARITY_WINDOW kept
    entries (the newest ones). Pure: the log itself is never modified.
    """
    if not entries or max_entries <= 0:
        return []

    kept: List[CodexEntry] = [entries[-1]]
    for entry in reversed(entries[:-1]):
        if len(kept) >= max_entries:
            break
        window = kept[:CODEX_SIMILARITY_WINDOW]
        if any(are_similar(recent, entry) for recent in window):
            continue
        kept.append(entry)
    return kept
