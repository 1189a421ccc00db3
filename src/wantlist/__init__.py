"""Want-list reconciliation module."""

from .reconciler import PostCommitTasks, WantlistReconciler, queue_wantlist_cleanup
from .store import HttpWantlistStore, InMemoryWantlistStore

__all__ = [
    "HttpWantlistStore",
    "InMemoryWantlistStore",
    "PostCommitTasks",
    "WantlistReconciler",
    "queue_wantlist_cleanup",
]
