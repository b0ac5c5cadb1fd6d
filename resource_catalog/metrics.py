"""Fetch chain observability metrics.

Each pagination chain is tracked on its own, so concurrent chains (base
search plus tag and category expansion) never share a metrics record.
Metrics tracked:
- pages_fetched / total_pages: pagination completeness per chain
- records_merged: page records handed to the collection
- status: loaded, failed or discarded (superseded generation)
- latency_ms: wall time of the whole chain
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger("resource_catalog.metrics")


@dataclass
class ChainMetrics:
    """Metrics for a single pagination chain."""
    collection: str
    chain_id: str
    generation: Optional[int] = None
    pages_fetched: int = 0
    total_pages: int = 1
    records_merged: int = 0
    status: str = "loaded"  # loaded, failed, discarded
    latency_ms: float = 0.0
    error_message: Optional[str] = None

    def record_page(self, page: int, total_pages: int, record_count: int) -> None:
        self.pages_fetched = page
        self.total_pages = total_pages
        self.records_merged += record_count

    def is_complete(self) -> bool:
        return self.status == "loaded" and self.pages_fetched >= self.total_pages


class FetchMetricsCollector:
    """Collector for pagination chain metrics."""

    def __init__(self, history_size: int = 100):
        self._history_size = history_size
        self.history: List[ChainMetrics] = []

    @contextmanager
    def track_chain(self, collection: str, chain_id: str, generation: Optional[int] = None):
        """Context manager to time a chain and log its summary on exit."""
        metrics = ChainMetrics(collection=collection, chain_id=chain_id, generation=generation)
        started = time.monotonic()
        try:
            yield metrics
        except Exception as e:
            metrics.status = "failed"
            metrics.error_message = f"{type(e).__name__}: {e}"
            raise
        finally:
            metrics.latency_ms = (time.monotonic() - started) * 1000
            self.history.append(metrics)
            del self.history[:-self._history_size]
            self._log_metrics(metrics)

    def summary(self) -> Dict[str, int]:
        """Chain counts by status across the retained history."""
        counts: Dict[str, int] = {"loaded": 0, "failed": 0, "discarded": 0}
        for m in self.history:
            counts[m.status] = counts.get(m.status, 0) + 1
        return counts

    def _log_metrics(self, m: ChainMetrics) -> None:
        log_data = {
            "event": "chain_complete",
            "collection": m.collection,
            "generation": m.generation,
            "pages": {"fetched": m.pages_fetched, "total": m.total_pages},
            "records_merged": m.records_merged,
            "status": m.status,
            "latency_ms": round(m.latency_ms, 1),
        }

        if m.status == "failed":
            log_data["error"] = m.error_message
            logger.error(f"Chain for {m.collection} failed", extra=log_data)
        elif m.status == "discarded":
            logger.info(f"Chain for {m.collection} superseded, results discarded", extra=log_data)
        else:
            logger.info(f"Chain for {m.collection} completed", extra=log_data)
