"""Id-keyed record collections and the resource store."""

from __future__ import annotations

from typing import Any, Dict, Generic, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from resource_catalog.exceptions import PageParseError
from resource_catalog.models import Resource, SortDirection, SortKey
from resource_catalog.sorting import sort_resources

RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordCollection(Generic[RecordT]):
    """Ordered collection of records, unique by ``id``.

    Merging is a union on id: a record whose id is already present is
    ignored, so the first-seen copy keeps both its position and its content.
    Merging the same page twice is a no-op.
    """

    record_type: Type[RecordT]

    def __init__(self, name: str):
        self.name = name
        self._records: List[RecordT] = []
        self._index: Dict[int, RecordT] = {}

    def parse_page(self, payload: Sequence[Any]) -> List[RecordT]:
        """Validate a decoded JSON page into records."""
        try:
            return [self.record_type.model_validate(item) for item in payload]
        except ValidationError as e:
            raise PageParseError(
                f"Invalid {self.name} record: {e.error_count()} validation error(s)",
                detail={"collection": self.name},
            ) from e

    def merge(self, records: Iterable[RecordT], *, union: bool = True) -> int:
        """Merge ``records`` in; ``union=False`` replaces the collection first.

        Returns the number of records added.
        """
        if not union:
            self.clear()
        added = 0
        for record in records:
            record_id = record.id
            if record_id in self._index:
                continue
            self._index[record_id] = record
            self._records.append(record)
            added += 1
        return added

    def replace(self, records: Iterable[RecordT]) -> None:
        self.merge(records, union=False)

    def clear(self) -> None:
        self._records = []
        self._index = {}

    def get(self, record_id: Any) -> Optional[RecordT]:
        return self._index.get(record_id)

    @property
    def records(self) -> List[RecordT]:
        return list(self._records)

    def ids(self) -> List[int]:
        return [record.id for record in self._records]

    def _reorder(self, records: List[RecordT]) -> None:
        self._records = records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RecordT]:
        return iter(list(self._records))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._index

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name!r} records={len(self)}>"


class ResourceStore(RecordCollection[Resource]):
    """The single, authoritative list of resource records."""

    record_type = Resource

    def __init__(self, name: str = "resources"):
        super().__init__(name)

    def sort(self, key: SortKey = "title", direction: SortDirection = "asc") -> None:
        self._reorder(sort_resources(self._records, key, direction))

    def mark_shown(self, resource_id: int) -> bool:
        """Reveal a resource's content. Returns False for unknown ids."""
        resource = self.get(resource_id)
        if resource is None:
            return False
        resource.shown = True
        return True
