"""Pipeline data records shared between processing stages.

A PipelineItem travels through the document pipeline. Stages enrich it by
writing into aggregated_results and appending to results_indexes; both
containers are shared by reference between the incoming and outgoing item.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

STAGE_NAME = "speechToText"
BATCH_STAGE_TAG = "stt"
ASYNC_TRANSACTION_TYPE = "async transaction"
TEXT_TYPE = "text"


def result_index(index: int, name: str, type_: str) -> dict[str, Any]:
    """Build a results_indexes record."""
    return {"index": index, "name": name, "type": type_}


@dataclass
class PipelineItem:
    """Mutable record handed from one pipeline stage to the next."""

    filename: str = ""
    label: str | None = None
    bpa_id: str | None = None
    pipeline: str | None = None
    data: Any = None
    type: str | None = None
    index: int | None = None
    service_specific_config: dict[str, Any] = field(default_factory=dict)
    aggregated_results: dict[str, Any] = field(default_factory=dict)
    results_indexes: list[dict[str, Any]] = field(default_factory=list)

    @property
    def locale_override(self) -> str | None:
        """Locale requested via serviceSpecificConfig.to, if any."""
        return (self.service_specific_config or {}).get("to") or None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PipelineItem:
        """Build an item from the camelCase pipeline shape.

        aggregatedResults and resultsIndexes are adopted as-is, not copied.
        """
        aggregated = payload.get("aggregatedResults")
        indexes = payload.get("resultsIndexes")
        return cls(
            filename=payload.get("filename", ""),
            label=payload.get("label"),
            bpa_id=payload.get("bpaId"),
            pipeline=payload.get("pipeline"),
            data=payload.get("data"),
            type=payload.get("type"),
            index=payload.get("index"),
            service_specific_config=payload.get("serviceSpecificConfig") or {},
            aggregated_results=aggregated if aggregated is not None else {},
            results_indexes=indexes if indexes is not None else [],
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the item in camelCase, omitting unset optional fields."""
        payload: dict[str, Any] = {
            "filename": self.filename,
            "label": self.label,
            "bpaId": self.bpa_id,
            "pipeline": self.pipeline,
            "type": self.type,
            "index": self.index,
            "data": self.data,
            "aggregatedResults": self.aggregated_results,
            "resultsIndexes": self.results_indexes,
        }
        if self.service_specific_config:
            payload["serviceSpecificConfig"] = self.service_specific_config
        return {k: v for k, v in payload.items() if v is not None}
