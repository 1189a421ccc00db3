"""JSON output formatting for archive pages and acknowledgements.

The same dictionaries are returned by the HTTP app and written by the CLI's
``--json`` mode, so both surfaces agree on field names:

    {
        "products": [{"id": ..., "handle": ..., "in_stock": true, ...}],
        "total_count": 120,
        "has_next_page": true,
        "page": 1,
        "page_size": 48,
        "total_pages": 3,
        "display_name": "Larry Heard",
        "error": null
    }
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

from src.models.data_models import ArchivePage, InvalidationResult, Product, ReconcileReport


class JSONOutputFormatter:
    """Formats catalog results as JSON-serializable dictionaries."""

    def format_product(self, product: Product) -> Dict[str, Any]:
        return asdict(product)

    def format_page(self, page: ArchivePage) -> Dict[str, Any]:
        return {
            "products": [self.format_product(p) for p in page.products],
            "total_count": page.total_count,
            "has_next_page": page.has_next_page,
            "page": page.page,
            "page_size": page.page_size,
            "total_pages": page.total_pages,
            "display_name": page.display_name,
            "error": page.error,
        }

    def format_invalidation(self, result: InvalidationResult) -> Dict[str, Any]:
        return {"revalidated": list(result.revalidated), "timestamp": result.timestamp}

    def format_reconcile(self, report: ReconcileReport) -> Dict[str, Any]:
        return {
            "removed": [asdict(entry) for entry in report.removed],
            "failed": [asdict(entry) for entry in report.failed],
        }

    def to_json(self, data: Dict[str, Any], indent: int = 2) -> str:
        return json.dumps(data, indent=indent, ensure_ascii=False)

    def save(self, data: Dict[str, Any], output_path: str) -> None:
        """
        Save formatted data to a JSON file, creating parent directories.

        Raises:
            IOError: If file cannot be written
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json(data))
