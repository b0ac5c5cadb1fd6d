"""
Taxonomy vocabularies: audiences, lengths, programs, categories and tags.

Each vocabulary is fetched in full once per session (all pages) and then used
for two things: turning the term ids on a resource into display names and
slugs, and matching free-text searches against term names so the search can
be widened to resources tagged with those terms.

Lookups never fail. An id that is not in the vocabulary (not fetched yet, or
deleted on the server) comes back as the raw id so the caller still has
something to display.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from resource_catalog.models import TermRecord
from resource_catalog.store import RecordCollection

# Vocabulary name -> REST route under /wp-json/wp/v2
VOCABULARY_ROUTES: Dict[str, str] = {
    "audiences": "resource_audiences",
    "lengths": "resource_lengths",
    "programs": "resource_programs",
    "categories": "categories",
    "tags": "tags",
}


class TermVocabulary(RecordCollection[TermRecord]):
    """One taxonomy vocabulary, unique by term id."""

    record_type = TermRecord

    def __init__(self, name: str, route: Optional[str] = None):
        super().__init__(name)
        self.route = route or VOCABULARY_ROUTES.get(name, name)

    def by_id(self, term_id: int) -> Union[TermRecord, int]:
        """The term with ``term_id``, or ``term_id`` itself when unknown."""
        term = self.get(term_id)
        return term if term is not None else term_id

    def name(self, term_id: int) -> Union[str, int]:
        term = self.get(term_id)
        return term.name if term is not None else term_id

    def slug(self, term_id: int) -> Union[str, int]:
        term = self.get(term_id)
        return term.slug if term is not None else term_id

    def search_by_name(self, query: str) -> List[TermRecord]:
        """Terms whose name contains ``query``, case-insensitively."""
        needle = (query or "").lower()
        return [term for term in self._records if needle in term.name.lower()]


def build_vocabularies() -> Dict[str, TermVocabulary]:
    """One empty vocabulary per known taxonomy."""
    return {name: TermVocabulary(name, route) for name, route in VOCABULARY_ROUTES.items()}
