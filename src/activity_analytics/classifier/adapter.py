"""Turn classifier replies into per-page categories and keyword frequencies."""

from __future__ import annotations

import json
import logging

from activity_analytics.analytics.keywords import sum_keywords
from activity_analytics.classifier.client import ClassifierClient
from activity_analytics.classifier.parser import extract_json_array, extract_json_object
from activity_analytics.exceptions import ClassifierResponseMalformedError
from activity_analytics.models import (
    CategorizedPage,
    Category,
    KeywordFrequency,
    VisitedPage,
)

logger = logging.getLogger(__name__)

CATEGORIZE_SYSTEM_PROMPT = "You are an expert at classifying browser history entries by topic."
CATEGORIZE_PROMPT = """Below is the user's browsing history. Using each page's title and URL,
assign exactly one category per page from this list:
{categories}

Reply only with a strict JSON array, one element per page, in the same order:
[
  {{ "title": "...", "url": "...", "category": "..." }}
]

Browsing history:
{pages}
"""

KEYWORDS_SYSTEM_PROMPT = "You are an expert at extracting key topics from browser history."
KEYWORDS_PROMPT = """The JSON below lists pages the user visited recently.
Extract one meaningful keyword (a noun or key term) from each page title.
List each keyword once together with how often it occurs.

Reply only with JSON in exactly this shape:
{{
  "keywordFrequencies": [
    {{ "keyword": "example1", "frequency": 3 }},
    {{ "keyword": "example2", "frequency": 2 }}
  ]
}}

{pages}
"""


def _pages_json(pages: list[VisitedPage]) -> str:
    return json.dumps({"visitedPages": [p.to_dict() for p in pages]}, ensure_ascii=False)


class CategoryClassifier:
    """Assign a :class:`Category` to every page with one batched classifier call."""

    def __init__(self, client: ClassifierClient, temperature: float = 0.2):
        self.client = client
        self.temperature = temperature

    def classify(self, pages: list[VisitedPage]) -> list[CategorizedPage]:
        """Classify ``pages``; the result always has ``len(pages)`` entries.

        Entries are matched to pages by position. Missing entries and unknown
        categories fall back to ``Category.default()``.

        Raises:
            ClassificationError: the classifier call itself failed.
        """
        if not pages:
            return []

        categories = ", ".join(f"'{c.display_name}'" for c in Category)
        prompt = CATEGORIZE_PROMPT.format(categories=categories, pages=_pages_json(pages))
        content = self.client.complete(CATEGORIZE_SYSTEM_PROMPT, prompt, self.temperature)
        entries = extract_json_array(content)

        if len(entries) != len(pages):
            logger.warning(
                "Classifier returned %d entries for %d pages; reconciling by position",
                len(entries),
                len(pages),
            )

        result: list[CategorizedPage] = []
        for i, page in enumerate(pages):
            entry = entries[i] if i < len(entries) else None
            result.append(CategorizedPage(page=page, category=self._category_for(i, page, entry)))
        return result

    @staticmethod
    def _category_for(index: int, page: VisitedPage, entry) -> Category:
        if not isinstance(entry, dict):
            return Category.default()

        echoed_title = entry.get("title")
        echoed_url = entry.get("url")
        if (echoed_title and echoed_title != page.title) or (echoed_url and echoed_url != page.url):
            logger.warning(
                "Classifier entry %d echoes %r / %r for page %r; keeping positional match",
                index,
                echoed_title,
                echoed_url,
                page.title,
            )

        raw = entry.get("category")
        category = Category.parse(raw if isinstance(raw, str) else None)
        if category is None:
            logger.warning(
                "Unknown category %r for page %r; using %s",
                raw,
                page.title,
                Category.default(),
            )
            return Category.default()
        return category


class KeywordExtractor:
    """Extract keyword frequencies from page titles."""

    def __init__(self, client: ClassifierClient, temperature: float = 0.3):
        self.client = client
        self.temperature = temperature

    def extract(self, pages: list[VisitedPage]) -> list[KeywordFrequency]:
        """Return the batch's keywords, repeated keywords already summed.

        Raises:
            ClassificationError: the call failed or the reply had no usable object.
        """
        if not pages:
            return []

        prompt = KEYWORDS_PROMPT.format(pages=_pages_json(pages))
        content = self.client.complete(KEYWORDS_SYSTEM_PROMPT, prompt, self.temperature)
        data = extract_json_object(content)

        raw_items = data.get("keywordFrequencies")
        if raw_items is None:
            raise ClassifierResponseMalformedError("Classifier reply has no keywordFrequencies")
        if not isinstance(raw_items, list):
            raise ClassifierResponseMalformedError("keywordFrequencies is not a list")

        items: list[KeywordFrequency] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            keyword = raw.get("keyword")
            if not isinstance(keyword, str) or not keyword.strip():
                continue
            try:
                frequency = int(raw.get("frequency", 1))
            except (TypeError, ValueError):
                frequency = 1
            items.append(KeywordFrequency(keyword=keyword.strip(), frequency=max(1, frequency)))

        return sum_keywords(items)
