from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from gateway_errors import GatewayError, InternalFailure

T = TypeVar("T")


def run_batch(items: Iterable[T], operation: Callable[[T], dict[str, Any]]) -> list[dict[str, Any]]:
    """Apply ``operation`` to every item in order, one result per item.

    Any failure of one item becomes that item's error entry and never stops
    its siblings. Exceptions outside the GatewayError family are reported as
    ``INTERNAL_ERROR``.
    """

    results: list[dict[str, Any]] = []
    for item in items:
        try:
            results.append(operation(item))
        except GatewayError as e:
            results.append(e.item_body())
        except Exception as e:
            results.append(InternalFailure(str(e) or type(e).__name__).item_body())
    return results


def error_count(results: list[dict[str, Any]]) -> int:
    return sum(1 for r in results if "error" in r)
