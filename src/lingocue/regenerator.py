# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Sentence regeneration: merging caption fragments into whole sentences.

Auto-generated captions are usually cut by duration rather than by grammar,
so one sentence can be spread over several captions. Regeneration groups
consecutive captions and finalizes a group when any of these holds, in order:

1. The merged text ends in '.', '!' or '?'
2. The caption is the last one in the input
3. The next caption starts with an uppercase letter

Rule 3 is a heuristic. On text with irregular casing it can group differently
when applied a second time, so regenerate() is not a true fixed point.
That behaviour is kept as-is.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from .subtitle_parser import CaptionEntry, SentenceEntry

logger = logging.getLogger(__name__)

SENTENCE_END: re.Pattern[str] = re.compile(r'[.!?]$')
MARKUP_TAG: re.Pattern[str] = re.compile(r'<[^>]*>')

# Sentences with at least this many words count as long
LONG_SENTENCE_WORDS: int = 20


def _merge_text(group: Sequence[CaptionEntry]) -> str:
    """Join the trimmed texts of a group, skipping empty ones."""
    return ' '.join(t for t in (entry.text.strip() for entry in group) if t).strip()


def _starts_with_capital(entry: CaptionEntry) -> bool:
    first: str = entry.text.strip()[:1]
    return first.isupper()


def regenerate(entries: Sequence[CaptionEntry]) -> list[SentenceEntry]:
    """
    Merge caption entries into sentence entries.

    Each output sentence spans from its first caption's start to its last
    caption's end. Captions with empty text still extend the time range.
    Indices are reassigned densely from 1.

    Args:
        entries: Captions in playback order

    Returns:
        Sentence entries (a new list; the input is not modified)
    """
    sentences: list[SentenceEntry] = []
    group: list[CaptionEntry] = []

    for i, entry in enumerate(entries):
        group.append(entry)
        merged: str = _merge_text(group)

        is_last: bool = i == len(entries) - 1
        should_finalize: bool = (
            bool(SENTENCE_END.search(merged))
            or is_last
            or _starts_with_capital(entries[i + 1])
        )

        if should_finalize:
            sentences.append(SentenceEntry(
                index=len(sentences) + 1,
                start_time=group[0].start_time,
                end_time=group[-1].end_time,
                text=merged,
            ))
            group = []

    logger.info("Regenerated %d caption(s) into %d sentence(s)",
                len(entries), len(sentences))
    return sentences


def _word_count(text: str) -> int:
    return len(text.split())


def count_words(entries: Sequence[CaptionEntry]) -> int:
    """Total number of whitespace-separated words across all entries."""
    return sum(_word_count(entry.text) for entry in entries)


@dataclass(frozen=True)
class TranscriptStats:
    """Summary shown before and after regenerating a transcript."""
    total_sentences: int
    total_words: int
    average_words_per_sentence: float
    short_sentences: int  # Fewer than LONG_SENTENCE_WORDS words
    long_sentences: int


def get_transcript_stats(entries: Sequence[CaptionEntry]) -> TranscriptStats:
    """Compute sentence and word counts for a transcript."""
    total_sentences: int = len(entries)
    total_words: int = count_words(entries)
    long_sentences: int = sum(
        1 for entry in entries if _word_count(entry.text) >= LONG_SENTENCE_WORDS)

    return TranscriptStats(
        total_sentences=total_sentences,
        total_words=total_words,
        average_words_per_sentence=(
            total_words / total_sentences if total_sentences else 0.0),
        short_sentences=total_sentences - long_sentences,
        long_sentences=long_sentences,
    )


def get_transcript_preview(entries: Sequence[CaptionEntry], count: int = 3) -> str:
    """Text of the first few entries, with an ellipsis if there are more."""
    if not entries:
        return "No transcript available"

    preview: str = ' '.join(entry.text for entry in entries[:count])
    return preview + ("..." if len(entries) > count else "")


def clean_caption_text(text: str) -> str:
    """Strip inline markup such as <i> or <c.yellow> and collapse whitespace."""
    return ' '.join(MARKUP_TAG.sub('', text).split())
