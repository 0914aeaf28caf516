"""Cancellation tokens: zero-argument predicates polled by long-running steps."""

from typing import Callable

from blueprint_uploader.errors import UploadCancelledError

CancelQuery = Callable[[], bool]


def never_cancelled() -> bool:
    return False


def raise_if_cancelled(cancel_query: CancelQuery, stage: str) -> None:
    """
    Raise UploadCancelledError when ``cancel_query`` reports an abort.

    Args:
        cancel_query: Cancellation predicate
        stage: Human readable name of the stage about to start
    """
    if cancel_query():
        raise UploadCancelledError(f"Cancelled before {stage}")
