"""Metric value object and name validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

METRIC_NAME_PATTERN = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")


def is_valid_metric_name(name: str) -> bool:
    """Return ``True`` when ``name`` is a valid exposition metric name.

    Examples
    --------
    >>> is_valid_metric_name("logs_total")
    True
    >>> is_valid_metric_name("1bad")
    False
    >>> is_valid_metric_name("has-dash")
    False
    """

    return bool(name) and METRIC_NAME_PATTERN.fullmatch(name) is not None


@dataclass(slots=True)
class Metric:
    """Named gauge value with optional string metadata."""

    value: float = 0.0
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"value": self.value}
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, payload: Any) -> "Metric":
        """Accept both ``{"value": ..}`` records and bare numbers.

        Raises
        ------
        ValueError
            When ``payload`` is neither a number nor a record.

        Examples
        --------
        >>> Metric.from_dict(3).value
        3.0
        >>> Metric.from_dict("oops")
        Traceback (most recent call last):
        ...
        ValueError: metric payload must be a number or a mapping, got str
        """
        if isinstance(payload, (int, float)):
            return cls(value=float(payload))
        if not isinstance(payload, Mapping):
            raise ValueError(f"metric payload must be a number or a mapping, got {type(payload).__name__}")
        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ValueError(f"metric metadata must be a mapping, got {type(metadata).__name__}")
        return cls(
            value=float(payload.get("value", 0.0)),
            metadata={str(key): str(value) for key, value in metadata.items()},
        )


__all__ = ["METRIC_NAME_PATTERN", "Metric", "is_valid_metric_name"]
