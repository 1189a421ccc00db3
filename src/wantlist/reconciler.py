"""Removal of purchased items from a customer's want-list after checkout."""

from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from src.models.data_models import OrderLine, ReconcileReport, WantlistEntry
from src.models.errors import CatalogError, PartialReconciliationFailure
from src.monitoring.logger import StructuredLogger
from src.wantlist.store import WantlistStore


class WantlistReconciler:
    """
    Deletes want-list entries covered by a confirmed order.

    An entry matches an order line on product_id, and on variant_id only
    when both carry one. Every match is removed with its own delete call so
    one failing delete does not hold back the rest.
    """

    def __init__(self, store: WantlistStore, logger: Optional[StructuredLogger] = None):
        self.store = store
        self.logger = logger

    async def reconcile(self, account: str, order_lines: Sequence[OrderLine]) -> ReconcileReport:
        """
        Remove every want-list entry matched by ``order_lines``.

        Never raises: a failed load yields an empty report, a failed delete
        is logged and listed in ``report.failed``.
        """
        report = ReconcileReport()
        if not order_lines:
            return report

        try:
            wantlist = await self.store.list(account)
        except CatalogError as e:
            if self.logger:
                self.logger.wantlist_error(account, str(e))
            return report

        if not wantlist:
            return report

        for entry in self.matching_entries(wantlist, order_lines):
            try:
                await self._remove(account, entry)
            except PartialReconciliationFailure as e:
                report.failed.append(entry)
                if self.logger:
                    self.logger.wantlist_error(account, e.message, product_id=entry.product_id)
                continue
            report.removed.append(entry)
            if self.logger:
                self.logger.wantlist_removed(account, entry.product_id, entry.variant_id)

        return report

    @staticmethod
    def matching_entries(
        wantlist: Sequence[WantlistEntry],
        order_lines: Sequence[OrderLine]
    ) -> List[WantlistEntry]:
        """Every stored entry matched by an order line, duplicates included."""
        return [entry for entry in wantlist if any(entry.matches(line) for line in order_lines)]

    async def _remove(self, account: str, entry: WantlistEntry) -> None:
        try:
            await self.store.remove(account, entry)
        except Exception as e:
            raise PartialReconciliationFailure(entry.product_id, entry.variant_id, str(e)) from e


TaskFactory = Callable[[], Awaitable[object]]


class PostCommitTasks:
    """
    Side effects queued during order confirmation, run once the order commits.

    Tasks run one after another; a failing task is logged and the loop moves
    on to the next one.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger
        self._tasks: List[Tuple[str, TaskFactory]] = []

    def add(self, name: str, factory: TaskFactory) -> None:
        self._tasks.append((name, factory))

    def __len__(self) -> int:
        return len(self._tasks)

    def discard(self) -> None:
        """Drop queued tasks; used when the order does not commit."""
        self._tasks.clear()

    async def run(self) -> List[str]:
        """
        Run and clear the queue.

        Returns:
            Names of the tasks that failed
        """
        tasks, self._tasks = self._tasks, []
        failed = []
        for name, factory in tasks:
            try:
                await factory()
            except Exception as e:
                failed.append(name)
                if self.logger:
                    self.logger.task_failed(name, str(e))
        return failed


def queue_wantlist_cleanup(
    tasks: PostCommitTasks,
    reconciler: WantlistReconciler,
    account: str,
    order_lines: Sequence[OrderLine]
) -> None:
    """Schedule want-list reconciliation for a confirmed order."""
    lines = list(order_lines)
    tasks.add("wantlist_cleanup", lambda: reconciler.reconcile(account, lines))
