"""
Batch conversion service.
Runs the codec over a list of items, isolating failures per item.
"""

import time
from collections.abc import Callable
from typing import Any, TypedDict

from codec.exceptions import ToonConversionError
from codec.models import DecodeItem, EncodeItem
from codec.tokens import estimate_tokens
from codec.toon import decode, encode_with_savings, load_json
from logger import get_logger

logger = get_logger(__name__)


class BatchStats(TypedDict):
    total: int
    succeeded: int
    failed: int
    elapsed_time: float


class ConversionService:
    """
    Service for converting batches of items between JSON and TOON.

    Each item carries its own options. With continue_on_fail a failing item
    yields {"error": message} and processing goes on; otherwise the first
    failure aborts the batch with a ToonConversionError naming the item index.
    """

    def __init__(self, counter: Callable[[str], int] = estimate_tokens):
        self.counter = counter
        self.last_stats: BatchStats | None = None

    def encode_items(
        self, items: list[EncodeItem], continue_on_fail: bool = False
    ) -> list[dict[str, Any]]:
        """Encode each item, returning one result dict per item."""
        return self._run(items, self._encode_one, continue_on_fail, "encode")

    def decode_items(
        self, items: list[DecodeItem], continue_on_fail: bool = False
    ) -> list[Any]:
        """Decode each item, returning one decoded value per item."""
        return self._run(items, self._decode_one, continue_on_fail, "decode")

    def _encode_one(self, item: EncodeItem) -> dict[str, Any]:
        value = item.json_input
        if isinstance(value, str):
            value = load_json(value)
        result = encode_with_savings(value, item.mode, item.options, self.counter)
        return result.model_dump()

    def _decode_one(self, item: DecodeItem) -> Any:
        return decode(item.toon_input, item.options)

    def _run(self, items, convert, continue_on_fail: bool, label: str) -> list:
        start_time = time.time()
        results = []
        failed = 0

        for i, item in enumerate(items):
            try:
                results.append(convert(item))
            except Exception as e:
                failed += 1
                if continue_on_fail:
                    logger.warning(f"{label} item {i} failed: {e}")
                    results.append({"error": str(e)})
                    continue
                logger.error(f"{label} item {i} failed, aborting batch: {e}")
                raise ToonConversionError(i, str(e)) from e

        self.last_stats = {
            "total": len(items),
            "succeeded": len(items) - failed,
            "failed": failed,
            "elapsed_time": time.time() - start_time,
        }
        logger.info(
            f"{label} batch done: {self.last_stats['succeeded']}/{len(items)} succeeded"
        )
        return results
