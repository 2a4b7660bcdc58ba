"""Tracing utilities wrapping Opik."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from app.core.context import get_request_id, get_user_id
from app.observability.client import get_opik_client

logger = logging.getLogger(__name__)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
) -> Iterator[Optional[Any]]:
    """
    Open an Opik trace around a block.

    Request and user ids default to the ones bound for the current request.
    When Opik is disabled the context is a no-op yielding None.
    """
    client = get_opik_client()
    opik_trace = None

    if client:
        trace_metadata = {key: value for key, value in (metadata or {}).items() if value is not None}
        for key, value in (
            ("user_id", user_id or get_user_id()),
            ("request_id", request_id or get_request_id()),
            ("workspace_id", workspace_id),
        ):
            if value:
                trace_metadata.setdefault(key, str(value))
        try:
            opik_trace = client.trace(name=name, metadata=trace_metadata or None)
        except Exception as exc:  # pragma: no cover - SDK failure must not break requests
            logger.debug("Unable to start Opik trace %s: %s", name, exc)
            opik_trace = None

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"message": str(exc), "type": exc.__class__.__name__})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)
