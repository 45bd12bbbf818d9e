"""Inventory snapshot schemas.

The gateway reports resources in camelCase with string-encoded metrics
(``"N/A"`` for missing samples, ``"100GiB"`` for volume sizes). Everything is
parsed into plain optional numbers here, so nothing downstream sees the
sentinel strings.
"""

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

# Leading numeric prefix, the way "12.5", "12.5 MiB" or "7%" are read
_NUMERIC_PREFIX = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")

# Category keys used by the gateway, and the per-record "type" tags used when
# the monitoring service returns a flat list instead.
CATEGORY_TYPE_TAGS = {
    "EC2": "ec2",
    "S3": "s3",
    "RDS": "rds",
    "LAMBDA": "lambda",
    "EBS": "ebs",
}


def parse_optional_float(value: Any) -> float | None:
    """Parse a metric value, returning None when the sample is absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if number != number else number  # NaN
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value)
        if match:
            return float(match.group(1))
    return None


def parse_optional_count(value: Any) -> int | None:
    """Parse an integral counter such as an invocation count."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_size_gb(size: str | None) -> int:
    """Read a size string such as ``"100GiB"`` as whole gigabytes.

    All non-digit characters are dropped and the remaining digits are the size.
    """
    digits = re.sub(r"[^0-9]", "", size or "")
    if not digits:
        if size:
            logger.warning(f"Unparseable volume size {size!r}, counting as 0 GB")
        return 0
    return int(digits)


def null_as_blank(value: Any) -> Any:
    """Read a missing text attribute as an empty string."""
    return "" if value is None else value


def _lift_metric(data: Any, wire_name: str) -> Any:
    """Copy ``metrics.<wire_name>`` to the top level unless already present."""
    if not isinstance(data, dict):
        return data
    metrics = data.get("metrics")
    if isinstance(metrics, dict) and wire_name in metrics and wire_name not in data:
        data = {**data, wire_name: metrics[wire_name]}
    return data


class InventoryRecord(BaseModel):
    """Base for a single resource record."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ComputeInstance(InventoryRecord):
    """Compute instance (EC2)."""

    id: str
    name: str = ""
    state: str = ""
    cpu_utilization: float | None = Field(default=None, alias="cpuUtilization")

    @model_validator(mode="before")
    @classmethod
    def lift_metrics(cls, data: Any) -> Any:
        return _lift_metric(data, "cpuUtilization")

    @model_validator(mode="after")
    def default_name(self) -> "ComputeInstance":
        if not self.name:
            self.name = self.id
        return self

    blank_text = field_validator("name", "state", mode="before")(null_as_blank)
    parse_cpu = field_validator("cpu_utilization", mode="before")(parse_optional_float)

    @property
    def display(self) -> str:
        return f"{self.name} ({self.state})"


class StorageBucket(InventoryRecord):
    """Object-storage bucket (S3)."""

    name: str
    size_bytes: int = Field(default=0, alias="sizeInBytes")
    size_display: str | None = Field(default=None, alias="sizeDisplay")

    @field_validator("size_bytes", mode="before")
    @classmethod
    def parse_size(cls, v: Any) -> int:
        number = parse_optional_float(v)
        return int(number) if number is not None else 0


class ManagedDatabase(InventoryRecord):
    """Managed database instance (RDS)."""

    identifier: str
    instance_class: str | None = Field(default=None, alias="instanceClass")
    cpu_utilization: float | None = Field(default=None, alias="cpuUtilization")

    @model_validator(mode="before")
    @classmethod
    def lift_metrics(cls, data: Any) -> Any:
        return _lift_metric(data, "cpuUtilization")

    parse_cpu = field_validator("cpu_utilization", mode="before")(parse_optional_float)


class ServerlessFunction(InventoryRecord):
    """Serverless function (Lambda)."""

    name: str
    runtime: str | None = None
    invocations: int | None = None

    @model_validator(mode="before")
    @classmethod
    def lift_metrics(cls, data: Any) -> Any:
        return _lift_metric(data, "invocations")

    parse_invocations = field_validator("invocations", mode="before")(parse_optional_count)


class BlockVolume(InventoryRecord):
    """Block-storage volume (EBS)."""

    volume_id: str = Field(alias="volumeId")
    size: str = ""
    size_gb: int = 0
    state: str = ""
    volume_type: str | None = Field(default=None, alias="volumeType")

    @field_validator("size", mode="before")
    @classmethod
    def stringify_size(cls, v: Any) -> str:
        return "" if v is None else str(v)

    blank_state = field_validator("state", mode="before")(null_as_blank)

    @model_validator(mode="after")
    def compute_size_gb(self) -> "BlockVolume":
        self.size_gb = parse_size_gb(self.size)
        return self


class InventorySnapshot(BaseModel):
    """Point-in-time resources of one user, grouped by category."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ec2: list[ComputeInstance] = Field(default_factory=list)
    s3: list[StorageBucket] = Field(default_factory=list)
    rds: list[ManagedDatabase] = Field(default_factory=list)
    lambda_functions: list[ServerlessFunction] = Field(default_factory=list, alias="lambda")
    ebs: list[BlockVolume] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def group_flat_list(cls, data: Any) -> Any:
        """Accept a flat list of records tagged with ``type`` as well."""
        if not isinstance(data, list):
            return data
        grouped: dict[str, list[Any]] = {}
        for record in data:
            if not isinstance(record, dict):
                continue
            key = CATEGORY_TYPE_TAGS.get(str(record.get("type", "")).upper())
            if key is None:
                logger.debug(f"Ignoring inventory record of unknown type: {record.get('type')}")
                continue
            grouped.setdefault(key, []).append(record)
        return grouped

    @field_validator("ec2", "s3", "rds", "lambda_functions", "ebs", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def has_category(self, field_name: str) -> bool:
        """Whether the category was present in the source payload."""
        return field_name in self.model_fields_set
