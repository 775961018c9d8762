"""
Per-item publish/signal over a batch of host items.

Each item is sent on its own. A failed item (bad item data or a failed send)
either becomes an error record (`continue_on_fail=True`) or stops the batch with an
OperationError that names the failing item. Configuration errors always stop the batch.
"""
from typing import Any, Iterable, Literal

from loguru import logger
from pydantic import ValidationError

from pubnub_lite.client.pubnub_client import PubNubClient, SendFailure
from pubnub_lite.shared.errors import OperationError
from pubnub_lite.shared.models import OutboundItem

Operation = Literal["publish", "signal"]


async def run_items(
    client: PubNubClient,
    items: Iterable[dict[str, Any] | OutboundItem],
    operation: Operation = "publish",
    continue_on_fail: bool = False,
) -> list[dict[str, Any]]:
    if operation not in ("publish", "signal"):
        raise ValueError(f"Unknown operation: {operation}")

    results: list[dict[str, Any]] = []
    for index, raw in enumerate(items):
        try:
            item = raw if isinstance(raw, OutboundItem) else OutboundItem.model_validate(raw)
        except ValidationError as e:
            channel = raw.get("channel") if isinstance(raw, dict) else None
            logger.warning(f"event=batch_item_invalid operation={operation} item={index} errors={e.error_count()}")
            results.append(_failed(operation, channel, index, e, continue_on_fail))
            continue

        if operation == "publish":
            response = await client.publish(item.channel, item.message, item.metadata)
        else:
            response = await client.signal(item.channel, item.message)

        if isinstance(response, SendFailure):
            results.append(_failed(operation, item.channel, index, response.error, continue_on_fail))
            continue

        results.append({
            "operation": operation,
            "channel": item.channel,
            "success": True,
            "response": response,
        })

    logger.info(f"event=batch operation={operation} items={len(results)}")
    return results


def _failed(operation: str, channel: Any, index: int, error: BaseException, continue_on_fail: bool) -> dict[str, Any]:
    if not continue_on_fail:
        raise OperationError(
            f"Error in message:{operation} operation (item {index})",
            item_index=index,
            cause=error,
        ) from error
    return {
        "operation": operation,
        "channel": channel,
        "success": False,
        "error": str(error),
    }
