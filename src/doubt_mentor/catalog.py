from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from loguru import logger

from doubt_mentor.models import ResourceDescriptor

# Titles containing these words are assessments, not teachable resources.
_ASSESSMENT_WORDS = frozenset({"test", "tests", "quiz", "quizzes", "pyq", "pyqs", "challenge", "practice"})
_WORD = re.compile(r"[a-z0-9]+")


def is_assessment_title(title: str) -> bool:
    return any(word in _ASSESSMENT_WORDS for word in _WORD.findall(title.lower()))


class ResourceCatalog:
    """Immutable, ordinal-addressable list of learning resources.

    Built once at start-up and shared by reference between requests.
    """

    def __init__(self, descriptors: Iterable[ResourceDescriptor]):
        self._descriptors = tuple(d for d in descriptors if not is_assessment_title(d.title))

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(self._descriptors)

    def __getitem__(self, index: int) -> ResourceDescriptor:
        return self._descriptors[index]

    def get(self, index: int) -> ResourceDescriptor | None:
        """Bounds-checked ordinal lookup; negative indices never wrap."""
        if 0 <= index < len(self._descriptors):
            return self._descriptors[index]
        return None

    def list_all(self) -> tuple[ResourceDescriptor, ...]:
        return self._descriptors

    def describe_for_prompt(self) -> str:
        lines = []
        for i, d in enumerate(self._descriptors):
            tags = ", ".join(sorted(d.keyword_tags))
            lines.append(f"{i}. {d.subject}: {d.unit_title} > {d.title} [Keywords: {tags}]")
        return "\n".join(lines)

    @classmethod
    def from_records(cls, records: list[dict]) -> ResourceCatalog:
        descriptors = []
        for i, record in enumerate(records):
            descriptors.append(
                ResourceDescriptor(
                    id=str(record.get("id", i)),
                    subject=str(record.get("subject", "")),
                    unit_title=str(record.get("unitTitle", "")),
                    title=str(record["title"]),
                    keyword_tags=frozenset(
                        str(tag).strip().lower() for tag in record.get("keywordTags", []) if str(tag).strip()
                    ),
                    url=str(record.get("url", "")),
                )
            )
        return cls(descriptors)

    @classmethod
    def load(cls, path: str | Path) -> ResourceCatalog:
        catalog_path = Path(path)
        if not catalog_path.exists():
            logger.warning(f"Resource catalog not found at {catalog_path}; resource matching disabled")
            return cls([])
        with open(catalog_path, encoding="utf-8") as f:
            records = json.load(f)
        catalog = cls.from_records(records)
        logger.info(f"Loaded {len(catalog)} resources from {catalog_path}")
        return catalog
