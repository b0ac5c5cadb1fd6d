"""Widen a free-text search with matching tag and category terms.

A plain search only matches resource titles and bodies, so resources that are
reachable only through a tag or category with a matching name would be
missed. The expansion collects the ids of those terms; the client then runs
one extra, strictly taxonomy-filtered query per taxonomy.
"""

from __future__ import annotations

from typing import List

from resource_catalog.models import FilterState, SearchExpansion
from resource_catalog.vocabulary import TermVocabulary


def _matching_ids(vocabulary: TermVocabulary, query: str) -> List[int]:
    return [term.id for term in vocabulary.search_by_name(query)]


def expand_search(
    query: str,
    categories: TermVocabulary,
    tags: TermVocabulary,
    filters: FilterState,
) -> SearchExpansion:
    if not query:
        return SearchExpansion()

    # An explicit facet choice wins over the search for the same taxonomy
    tag_ids = _matching_ids(tags, query) if filters.tag == "all" else []
    category_ids = _matching_ids(categories, query) if filters.category == "all" else []
    return SearchExpansion(tag_ids=tag_ids, category_ids=category_ids)
