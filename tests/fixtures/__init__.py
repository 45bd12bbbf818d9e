"""Test fixtures for inventory payloads and upstream fakes."""

from .inventory_fixtures import (
    OTHER_USER_ID,
    USER_ID,
    FakeActuator,
    FakeInventoryProvider,
    ebs_volume,
    ec2_instance,
    lambda_function,
    rds_database,
    s3_bucket,
)
from .recommendation_fixtures import create_recommendation, create_savings_entry

__all__ = [
    "USER_ID",
    "OTHER_USER_ID",
    "FakeActuator",
    "FakeInventoryProvider",
    "ec2_instance",
    "s3_bucket",
    "rds_database",
    "lambda_function",
    "ebs_volume",
    "create_recommendation",
    "create_savings_entry",
]
