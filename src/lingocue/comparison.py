# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Text comparison for dictation practice.

Compares what the learner typed against the reference sentence, ignoring
case and punctuation and accepting common contraction variants
("i'm" / "im" / "i am").

Two independent results are produced:
- is_correct: the input equals one of the reference's equivalent phrasings
- matched_words: a strictly positional, word-by-word check used to reveal
  words as they are typed

The two can disagree. For example, typing "i am fine" for "I'm fine" is
correct, but "i" is not positionally equivalent to "im".
"""

import itertools
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from rapidfuzz import fuzz

# Contracted forms and the spellings accepted in their place.
# Each value list holds alternatives; multi-word alternatives are space separated.
WORD_EQUIVALENTS: dict[str, list[str]] = {
    "i'm": ["im", "i am"],
    "you're": ["youre", "you are"],
    "he's": ["hes", "he is", "he has"],
    "she's": ["shes", "she is", "she has"],
    "it's": ["its", "it is", "it has"],
    "we're": ["were", "we are"],
    "they're": ["theyre", "they are"],
    "that's": ["thats", "that is", "that has"],
    "there's": ["theres", "there is", "there has"],
    "here's": ["heres", "here is", "here has"],
    "what's": ["whats", "what is", "what has"],
    "where's": ["wheres", "where is", "where has"],
    "who's": ["whos", "who is", "who has"],
    "how's": ["hows", "how is", "how has"],
    "when's": ["whens", "when is", "when has"],
    "why's": ["whys", "why is", "why has"],
    "let's": ["lets", "let us"],
    "won't": ["wont", "will not"],
    "can't": ["cant", "cannot", "can not"],
    "don't": ["dont", "do not"],
    "doesn't": ["doesnt", "does not"],
    "didn't": ["didnt", "did not"],
    "wouldn't": ["wouldnt", "would not"],
    "couldn't": ["couldnt", "could not"],
    "shouldn't": ["shouldnt", "should not"],
    "haven't": ["havent", "have not"],
    "hasn't": ["hasnt", "has not"],
    "hadn't": ["hadnt", "had not"],
    "isn't": ["isnt", "is not"],
    "aren't": ["arent", "are not"],
    "wasn't": ["wasnt", "was not"],
    "weren't": ["werent", "were not"],
    "i'll": ["ill", "i will"],
    "you'll": ["youll", "you will"],
    "he'll": ["hell", "he will"],
    "she'll": ["shell", "she will"],
    "it'll": ["itll", "it will"],
    "we'll": ["well", "we will"],
    "they'll": ["theyll", "they will"],
    "i've": ["ive", "i have"],
    "you've": ["youve", "you have"],
    "we've": ["weve", "we have"],
    "they've": ["theyve", "they have"],
    "i'd": ["id", "i would", "i had"],
    "you'd": ["youd", "you would", "you had"],
    "he'd": ["hed", "he would", "he had"],
    "she'd": ["shed", "she would", "she had"],
    "we'd": ["wed", "we would", "we had"],
    "they'd": ["theyd", "they would", "they had"],
}


@dataclass
class WordMatchResult:
    """Outcome of comparing typed input with a reference sentence."""
    is_correct: bool
    matched_words: list[bool] = field(default_factory=list)  # One per reference word
    correct_words: list[str] = field(default_factory=list)
    user_words: list[str] = field(default_factory=list)

    @property
    def matched_count(self) -> int:
        """Number of reference words matched at their position."""
        return sum(self.matched_words)


def normalize_text(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    return ' '.join(re.sub(r'[^\w\s]', '', text.lower()).split())


def _build_groups() -> list[list[str]]:
    """Equivalence groups in normalized form: the contraction plus its alternatives."""
    groups: list[list[str]] = []
    for contraction, alternatives in WORD_EQUIVALENTS.items():
        group: list[str] = [normalize_text(contraction)]
        group.extend(alt for alt in alternatives if alt not in group)
        groups.append(group)
    return groups


EQUIVALENCE_GROUPS: list[list[str]] = _build_groups()


def word_variants(word: str) -> list[str]:
    """
    All accepted spellings of a normalized word, starting with the word itself.

    Example: word_variants("dont") returns ["dont", "do not"]
    """
    variants: list[str] = [word]
    for group in EQUIVALENCE_GROUPS:
        if word in group:
            variants.extend(v for v in group if v not in variants)
    return variants


def are_equivalent(reference_word: str, user_word: str) -> bool:
    """Check if two normalized words match directly or through the table."""
    if reference_word == user_word:
        return True
    return any(reference_word in group and user_word in group
               for group in EQUIVALENCE_GROUPS)


def iter_phrasings(text: str) -> Iterator[str]:
    """
    Yield every equivalent phrasing of a text.

    This is the full cross product of each word's variants, so it grows
    quickly with sentence length. Use matches_any_phrasing() for membership.
    """
    words: list[str] = normalize_text(text).split()
    for combination in itertools.product(*(word_variants(w) for w in words)):
        yield ' '.join(combination)


def matches_any_phrasing(user_input: str, reference: str) -> bool:
    """
    Check if the input equals any phrasing of the reference.

    Gives the same answer as checking membership in iter_phrasings(reference),
    but tracks the set of input positions each prefix of the reference can
    reach instead of building every combination.
    """
    reference_words: list[str] = normalize_text(reference).split()
    user_words: list[str] = normalize_text(user_input).split()
    if not reference_words:
        return not user_words

    positions: set[int] = {0}
    for word in reference_words:
        reachable: set[int] = set()
        for variant in word_variants(word):
            variant_words: list[str] = variant.split()
            width: int = len(variant_words)
            for pos in positions:
                if user_words[pos:pos + width] == variant_words:
                    reachable.add(pos + width)
        if not reachable:
            return False
        positions = reachable

    return len(user_words) in positions


def compare_texts(user_input: str, reference: str) -> WordMatchResult:
    """
    Compare typed input with the reference sentence.

    Args:
        user_input: What the learner typed
        reference: The sentence they were listening to

    Returns:
        WordMatchResult. Empty input or an empty reference is never correct
        and has no matched words.
    """
    correct_words: list[str] = normalize_text(reference).split()
    user_words: list[str] = normalize_text(user_input).split()

    if not correct_words or not user_words:
        return WordMatchResult(
            is_correct=False,
            matched_words=[],
            correct_words=correct_words,
            user_words=user_words,
        )

    matched_words: list[bool] = [
        index < len(user_words) and are_equivalent(word, user_words[index])
        for index, word in enumerate(correct_words)
    ]

    return WordMatchResult(
        is_correct=matches_any_phrasing(user_input, reference),
        matched_words=matched_words,
        correct_words=correct_words,
        user_words=user_words,
    )


def typing_progress(user_input: str, reference: str) -> float:
    """Fraction (0-1) of reference words typed correctly at their position."""
    result: WordMatchResult = compare_texts(user_input, reference)
    if not result.correct_words:
        return 0.0
    return result.matched_count / len(result.correct_words)


def similarity_score(user_input: str, reference: str) -> float:
    """Character-level similarity (0-100) of the normalized texts."""
    return fuzz.ratio(normalize_text(user_input), normalize_text(reference))
