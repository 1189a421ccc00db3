"""Structured logging for catalog cache and invalidation events."""

import json
import logging
from typing import List, Optional


class StructuredLogger:
    """Structured logger with uniform schema."""

    def __init__(self, name: str = "catalog", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """
        Log structured event.

        Standard keys: event, source, attribute, requested, cached, missing,
                      dimension, slug, page, paths, error
        """
        log_data = {"event": event, **kwargs}
        self.logger.log(level, json.dumps(log_data, default=str))

    def attribute_lookup(self, attribute: str, requested: int, cached: int) -> None:
        self.log("attribute_lookup", level=logging.DEBUG,
                 attribute=attribute, requested=requested, cached=cached)

    def attribute_fetch(self, attribute: str, requested: int, resolved: int, elapsed_ms: float) -> None:
        self.log("attribute_fetch", attribute=attribute, requested=requested,
                 resolved=resolved, elapsed_ms=round(elapsed_ms, 2))

    def attribute_fetch_error(self, attribute: str, requested: int, error: str) -> None:
        self.log("attribute_fetch_error", level=logging.WARNING,
                 attribute=attribute, requested=requested, error=error)

    def backend_retry(self, source: str, attempt: int, delay: float, error: str) -> None:
        self.log("backend_retry", level=logging.WARNING,
                 source=source, attempt=attempt, delay=round(delay, 3), error=error)

    def archive_resolved(self, dimension: str, slug: str, page: int, source: str,
                         count: int, total: int) -> None:
        self.log("archive_resolved", dimension=dimension, slug=slug, page=page,
                 source=source, count=count, total=total)

    def archive_error(self, dimension: str, slug: str, page: int, error: str) -> None:
        self.log("archive_error", level=logging.ERROR,
                 dimension=dimension, slug=slug, page=page, error=error)

    def invalidation_rejected(self, reason: str) -> None:
        self.log("invalidation_rejected", level=logging.WARNING, reason=reason)

    def invalidation_failed(self, error: str) -> None:
        self.log("invalidation_failed", level=logging.ERROR, error=error)

    def paths_evicted(self, scope: str, paths: List[str], attribute_entries: int) -> None:
        self.log("paths_evicted", scope=scope, paths=paths, attribute_entries=attribute_entries)

    def wantlist_removed(self, account: str, product_id: str, variant_id: Optional[str]) -> None:
        self.log("wantlist_removed", account=account, product_id=product_id, variant_id=variant_id)

    def wantlist_error(self, account: str, error: str, product_id: Optional[str] = None) -> None:
        self.log("wantlist_error", level=logging.ERROR,
                 account=account, product_id=product_id, error=error)

    def task_failed(self, task: str, error: str) -> None:
        self.log("post_commit_task_failed", level=logging.ERROR, task=task, error=error)
