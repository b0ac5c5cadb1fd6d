"""Client-side ordering of resource records."""

from __future__ import annotations

from typing import Any, Iterable, List, Tuple

from resource_catalog.models import Resource, SortDirection, SortKey


def sort_value(resource: Resource, key: SortKey) -> Any:
    """Comparison value for ``key``; titles compare lower-cased."""
    if key == "title":
        return resource.title.lower()
    return getattr(resource, key)


def sort_resources(
    records: Iterable[Resource],
    key: SortKey = "title",
    direction: SortDirection = "asc",
) -> List[Resource]:
    """Stable sort of ``records`` by a single field.

    There is no secondary key: records whose values compare equal keep their
    incoming relative order in both directions. Records without a value for
    ``key`` (e.g. no ``date``) go last in either direction.
    """
    descending = direction == "desc"

    def _key(resource: Resource) -> Tuple[bool, Any]:
        value = sort_value(resource, key)
        if value is None:
            return (not descending, 0)
        return (descending, value)

    # sorted(reverse=True) keeps equal elements in their original order
    return sorted(records, key=_key, reverse=descending)
