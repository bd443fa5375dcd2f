# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Lexical similarity and keyword extraction.

Pure functions used by the long-term write path (near-duplicate merge),
search scoring, and consolidation. Tokenization is deliberately simple:
lowercase and split on whitespace, punctuation is kept attached to words.
"""

from collections import Counter

# Default number of keywords returned by extract_keywords
DEFAULT_KEYWORD_COUNT = 10

# Tokens shorter than this are never keywords
MIN_KEYWORD_LENGTH = 4

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "could", "should", "may", "might", "must", "can", "this", "that",
        "these", "those", "i", "you", "he", "she", "it", "we", "they", "them",
        "their", "what", "which", "who", "when", "where", "why", "how", "all",
        "each", "every", "some", "any", "few", "more", "most", "other", "such",
        "no", "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    }
)


def tokenize(text: str) -> list[str]:
    """Lowercase and split text on whitespace.

    Example:
        >>> tokenize("Prefers  Email\\nover SMS")
        ['prefers', 'email', 'over', 'sms']
    """
    return text.lower().split()


def lexical_similarity(a: str, b: str) -> float:
    """Jaccard overlap of the word sets of a and b.

    Args:
        a: First text.
        b: Second text.

    Returns:
        |A & B| / |A | B| in [0, 1]; 0.0 when both texts are empty.

    Example:
        >>> lexical_similarity("prefers tabs", "prefers spaces")
        0.3333333333333333
    """
    words_a = set(tokenize(a))
    words_b = set(tokenize(b))

    union = words_a | words_b
    if not union:
        return 0.0

    return len(words_a & words_b) / len(union)


def extract_keywords(text: str, top_n: int = DEFAULT_KEYWORD_COUNT) -> list[str]:
    """Extract the most frequent non-stopword tokens.

    Tokens of 3 characters or fewer and stop words are discarded. Ties in
    frequency keep first-seen order.

    Args:
        text: Text to extract from.
        top_n: Maximum number of keywords.

    Returns:
        Up to top_n keywords, most frequent first.
    """
    words = [
        word
        for word in tokenize(text)
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    ]

    # Counter keeps insertion order and sorted() is stable
    counts = Counter(words)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [word for word, _ in ranked[:top_n]]
