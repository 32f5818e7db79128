"""Bounded-concurrency upload pool."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from ..models import Item, ItemResult, Outcome
from ..protocols import IRemoteStorage
from ..services.classifier import classify, duplicate_reason, error_message

logger = logging.getLogger(__name__)

ResultCallback = Callable[[ItemResult], Awaitable[None]]


class UploadWorkerPool:
    """
    Uploads the items of one batch with at most ``concurrency`` in flight.

    Every item reaches a terminal ItemResult; one item's failure never
    cancels its siblings. Results are returned to the caller, the pool
    itself holds no run state.
    """

    def __init__(self, remote: IRemoteStorage, concurrency: int = 10):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._remote = remote
        self._concurrency = concurrency

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def run_batch(
        self,
        items: Sequence[Item],
        on_result: Optional[ResultCallback] = None,
    ) -> List[ItemResult]:
        """
        Upload all items and wait for every one of them.

        Args:
            items: Items of one batch
            on_result: Awaited for each result, in completion order

        Returns:
            Results in completion order
        """
        semaphore = asyncio.Semaphore(self._concurrency)
        tasks = [
            asyncio.create_task(self._upload_one(item, semaphore))
            for item in items
        ]

        results = []
        try:
            for task in asyncio.as_completed(tasks):
                result = await task
                results.append(result)
                if on_result:
                    await on_result(result)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return results

    async def _upload_one(self, item: Item, semaphore: asyncio.Semaphore) -> ItemResult:
        async with semaphore:
            try:
                data = await item.read_payload()
                piece_cid = await self._remote.upload(data, dict(item.metadata))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                return self._contained(item, e)

        logger.debug(f"Uploaded {item.name} -> {piece_cid}")
        return ItemResult.ok(item.name, piece_cid)

    def _contained(self, item: Item, error: Exception) -> ItemResult:
        try:
            return self._classified(item, error)
        except Exception as e:
            logger.exception(f"Could not classify failure of {item.name}")
            return ItemResult.fail(item.name, type(error).__name__)

    @staticmethod
    def _classified(item: Item, error: Exception) -> ItemResult:
        outcome = classify(error)
        message = error_message(error)
        if outcome is Outcome.DUPLICATE:
            return ItemResult.duplicate(item.name, duplicate_reason(error))
        if outcome is Outcome.PERMANENT_SKIP:
            logger.warning(f"Skipping {item.name}: {message}")
            return ItemResult.skip(item.name, message)
        logger.error(f"Error uploading {item.name}: {message}")
        return ItemResult.fail(item.name, message)
