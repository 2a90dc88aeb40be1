"""Workflow action: merge contacts sharing a dedup key.

Adapts the automation platform's event/callback convention to the
resolution service. The event carries input fields under ``fields`` or
``inputFields``; the result is returned (and passed to ``callback`` when
one is given) as ``{"outputFields": {...}}``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mergeflow.config import load_resolution_config
from mergeflow.services.resolution.models import ResolutionRun
from mergeflow.services.resolution.service import (
    DuplicateResolutionService,
    create_default_resolution_service,
)

logger = logging.getLogger(__name__)

ActionCallback = Callable[[dict[str, Any]], None]


class ActionEvent(BaseModel):
    """Inbound workflow event."""

    model_config = ConfigDict(populate_by_name=True)

    event_fields: dict[str, Any] = Field(default_factory=dict, alias="fields")
    input_fields: dict[str, Any] = Field(default_factory=dict, alias="inputFields")
    callback_id: str | None = Field(default=None, alias="callbackId")

    def get_field(self, name: str) -> Any:
        """Return a field from ``fields``, falling back to ``inputFields``."""
        if name in self.event_fields:
            return self.event_fields[name]
        return self.input_fields.get(name)


def build_output(run: ResolutionRun) -> dict[str, Any]:
    """Translate a run result into the platform's output field payload."""
    return {
        "outputFields": {
            "status": run.state.value,
            "mergedCount": run.merged_count,
            "failedCount": run.failed_count,
            "targetId": run.target_id,
            "error": run.error,
        }
    }


def main(
    event: dict[str, Any],
    callback: ActionCallback | None = None,
    *,
    service: DuplicateResolutionService | None = None,
    dedup_property: str | None = None,
) -> dict[str, Any]:
    """Run the merge action for one inbound event.

    Args:
        event: Raw platform event.
        callback: Optional platform completion callback.
        service: Pre-built service (defaults to one built from the environment).
        dedup_property: Event field holding the dedup key (defaults to the
            service's dedup property).

    Returns:
        The ``{"outputFields": ...}`` payload that was passed to callback.
    """
    parsed = ActionEvent.model_validate(event)

    if service is None:
        service = create_default_resolution_service(load_resolution_config())
    dedup_property = dedup_property or service.dedup_property

    run = service.run(parsed.get_field(dedup_property), run_id=parsed.callback_id)
    logger.info(
        "Merge action finished: status=%s merged=%d failed=%d",
        run.state.value,
        run.merged_count,
        run.failed_count,
    )

    output = build_output(run)
    if callback is not None:
        callback(output)
    return output
