from __future__ import annotations

import re

from doubt_mentor.catalog import ResourceCatalog
from doubt_mentor.models import ResourceDescriptor

TAG_WEIGHT = 30
TITLE_WEIGHT = 12
UNIT_WEIGHT = 8

STOP_WORDS = frozenset({
    "what", "is", "the", "a", "an", "how", "to", "do", "can", "you", "explain",
    "tell", "me", "about", "please", "help", "with", "in", "of", "for", "and",
    "or", "but", "this", "that", "these", "those", "i", "my", "we", "our",
    "concept", "concepts", "topic", "topics", "chapter", "unit", "important",
    "formula", "work", "does", "from", "give", "one", "are", "there", "short",
    "also", "hey", "solve", "problem", "problems", "question", "questions",
})

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize(text: str) -> str:
    return " ".join(_NON_ALNUM.sub(" ", text.lower()).split())


def extract_keywords(question: str) -> list[str]:
    return [w for w in normalize(question).split() if len(w) > 2 and w not in STOP_WORDS]


def _contains_phrase(haystack: str, phrase: str) -> bool:
    needle = normalize(phrase)
    if not needle:
        return False
    return re.search(rf"\b{re.escape(needle)}\b", haystack) is not None


def score_descriptor(normalized_question: str, keywords: list[str], descriptor: ResourceDescriptor) -> int:
    score = 0
    for tag in descriptor.keyword_tags:
        if _contains_phrase(normalized_question, tag):
            score += TAG_WEIGHT

    title = normalize(descriptor.title)
    unit = normalize(descriptor.unit_title)
    for keyword in keywords:
        if keyword in title:
            score += TITLE_WEIGHT
        if keyword in unit:
            score += UNIT_WEIGHT
    return score


def rank(question: str, catalog: ResourceCatalog) -> list[tuple[int, int]]:
    """Return (index, score) for every positively scored resource, best first."""
    normalized_question = normalize(question)
    keywords = extract_keywords(question)
    scored = [
        (index, score_descriptor(normalized_question, keywords, descriptor))
        for index, descriptor in enumerate(catalog)
    ]
    positive = [(index, score) for index, score in scored if score > 0]
    # Stable sort keeps catalog order among equal scores.
    return sorted(positive, key=lambda item: item[1], reverse=True)


def find_best_resource(question: str, catalog: ResourceCatalog) -> ResourceDescriptor | None:
    ranked = rank(question, catalog)
    if not ranked:
        return None
    return catalog[ranked[0][0]]
