"""Rule-based cost recommendation evaluator.

Each rule inspects one resource category of an inventory snapshot and emits at
most one recommendation. Rules are independent and all applicable ones fire.
Evaluation has no side effects; persistence is left to ``RecommendationService``.
"""

import math

from cloudops.schemas.inventory import InventorySnapshot
from cloudops.schemas.recommendation import (
    FlaggedBucket,
    FlaggedDatabase,
    FlaggedFunction,
    FlaggedInstance,
    FlaggedVolume,
    IdleInstancesDetails,
    LargeBucketsDetails,
    RecommendationCategory,
    RecommendationCreate,
    RecommendationPriority,
    RecommendationType,
    ReservedInstancesDetails,
    StoppedInstancesDetails,
    UnattachedVolumesDetails,
    UnderutilizedDatabasesDetails,
    UnusedFunctionsDetails,
)

# Thresholds
IDLE_CPU_PERCENT = 5.0
RDS_RIGHTSIZING_CPU_PERCENT = 20.0
LARGE_BUCKET_BYTES = 1_000_000_000
RESERVED_MIN_INSTANCES = 2
RESERVED_DISCOUNT = 0.4

# Monthly savings estimates (USD)
IDLE_INSTANCE_MONTHLY = 15
STOPPED_INSTANCE_MONTHLY = 8
BUCKET_LIFECYCLE_MONTHLY = 12
RDS_RIGHTSIZING_MONTHLY = 89
EBS_PER_GB_MONTHLY = 0.10
UNUSED_FUNCTION_MONTHLY = 5

MONTHS_PER_YEAR = 12


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def _plural(count: int) -> str:
    return "s" if count > 1 else ""


def _build(
    user_id: str,
    recommendation_type: RecommendationType,
    priority: RecommendationPriority,
    category: RecommendationCategory,
    title: str,
    description: str,
    monthly: float,
    difficulty: str,
    implementation_time: str,
    impact: str,
    auto_implementable: bool,
    details,
) -> RecommendationCreate:
    return RecommendationCreate(
        user_id=user_id,
        recommendation_type=recommendation_type,
        priority=priority,
        category=category,
        title=title,
        description=description,
        estimated_monthly_savings=monthly,
        estimated_yearly_savings=monthly * MONTHS_PER_YEAR,
        difficulty=difficulty,
        implementation_time=implementation_time,
        impact=impact,
        auto_implementable=auto_implementable,
        resource_details=details,
    )


def _idle_instances(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    idle = [
        i for i in snapshot.ec2
        if i.state == "running"
        and i.cpu_utilization is not None
        and i.cpu_utilization < IDLE_CPU_PERCENT
    ]
    if not idle:
        return None
    count = len(idle)
    return _build(
        user_id,
        RecommendationType.EC2_IDLE,
        RecommendationPriority.HIGH,
        RecommendationCategory.COMPUTE,
        title=f"Stop {count} idle EC2 instance{_plural(count)}",
        description=(
            f"{count} EC2 instance(s) running with less than 5% CPU utilization. "
            "Consider stopping or downsizing."
        ),
        monthly=count * IDLE_INSTANCE_MONTHLY,
        difficulty="Easy",
        implementation_time="2 minutes",
        impact="Low Impact",
        auto_implementable=True,
        details=IdleInstancesDetails(
            instances=[FlaggedInstance(id=i.id, name=i.name, cpu=i.cpu_utilization) for i in idle]
        ),
    )


def _stopped_instances(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    stopped = [i for i in snapshot.ec2 if i.state == "stopped"]
    if not stopped:
        return None
    count = len(stopped)
    return _build(
        user_id,
        RecommendationType.EC2_STOPPED,
        RecommendationPriority.MEDIUM,
        RecommendationCategory.COMPUTE,
        title=f"Terminate {count} stopped EC2 instance{_plural(count)}",
        description=f"{count} EC2 instance(s) are stopped. You're still paying for EBS storage.",
        monthly=count * STOPPED_INSTANCE_MONTHLY,
        difficulty="Easy",
        implementation_time="1 minute",
        impact="No Impact",
        auto_implementable=True,
        details=StoppedInstancesDetails(
            instances=[FlaggedInstance(id=i.id, name=i.name) for i in stopped]
        ),
    )


def _large_buckets(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    large = [b for b in snapshot.s3 if b.size_bytes > LARGE_BUCKET_BYTES]
    if not large:
        return None
    count = len(large)
    return _build(
        user_id,
        RecommendationType.S3_LIFECYCLE,
        RecommendationPriority.MEDIUM,
        RecommendationCategory.STORAGE,
        title=f"Enable S3 Lifecycle policies on {count} bucket{_plural(count)}",
        description=(
            "Move infrequently accessed data to S3 Glacier to reduce storage costs by up to 70%."
        ),
        monthly=count * BUCKET_LIFECYCLE_MONTHLY,
        difficulty="Medium",
        implementation_time="10 minutes",
        impact="Low Impact",
        auto_implementable=False,
        details=LargeBucketsDetails(
            buckets=[
                FlaggedBucket(name=b.name, size_bytes=b.size_bytes, size_display=b.size_display)
                for b in large
            ]
        ),
    )


def _underutilized_databases(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    underused = [
        db for db in snapshot.rds
        if db.cpu_utilization is not None and db.cpu_utilization < RDS_RIGHTSIZING_CPU_PERCENT
    ]
    if not underused:
        return None
    count = len(underused)
    return _build(
        user_id,
        RecommendationType.RDS_RIGHTSIZING,
        RecommendationPriority.HIGH,
        RecommendationCategory.DATABASE,
        title=f"Downsize {count} over-provisioned RDS database{_plural(count)}",
        description="RDS instances running at <20% CPU. Consider downsizing to a smaller instance type.",
        monthly=count * RDS_RIGHTSIZING_MONTHLY,
        difficulty="Medium",
        implementation_time="15 minutes",
        impact="Medium Impact",
        auto_implementable=False,
        details=UnderutilizedDatabasesDetails(
            databases=[
                FlaggedDatabase(
                    identifier=db.identifier,
                    cpu=db.cpu_utilization,
                    instance_class=db.instance_class,
                )
                for db in underused
            ]
        ),
    )


def _unattached_volumes(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    unattached = [v for v in snapshot.ebs if v.state != "in-use"]
    if not unattached:
        return None
    count = len(unattached)
    total_gb = sum(v.size_gb for v in unattached)
    return _build(
        user_id,
        RecommendationType.EBS_UNUSED,
        RecommendationPriority.HIGH,
        RecommendationCategory.STORAGE,
        title=f"Delete {count} unused EBS volume{_plural(count)}",
        description=f"{total_gb} GB of unattached EBS volumes costing you money.",
        monthly=round_half_up(total_gb * EBS_PER_GB_MONTHLY),
        difficulty="Easy",
        implementation_time="2 minutes",
        impact="No Impact",
        auto_implementable=True,
        details=UnattachedVolumesDetails(
            volumes=[
                FlaggedVolume(
                    volume_id=v.volume_id,
                    size=v.size,
                    size_gb=v.size_gb,
                    volume_type=v.volume_type,
                )
                for v in unattached
            ]
        ),
    )


def _reserved_instances(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    if len(snapshot.ec2) < RESERVED_MIN_INSTANCES:
        return None
    running = sum(1 for i in snapshot.ec2 if i.state == "running")
    if running < RESERVED_MIN_INSTANCES:
        return None
    return _build(
        user_id,
        RecommendationType.RESERVED_INSTANCES,
        RecommendationPriority.MEDIUM,
        RecommendationCategory.COMPUTE,
        title="Switch to Reserved Instances",
        description=(
            f"You have {running} consistently running instances. "
            "Save up to 40% with Reserved Instances."
        ),
        monthly=round_half_up(running * IDLE_INSTANCE_MONTHLY * RESERVED_DISCOUNT),
        difficulty="Easy",
        implementation_time="5 minutes",
        impact="No Impact",
        auto_implementable=False,
        details=ReservedInstancesDetails(
            current_instances=running,
            potential_savings_percentage=int(RESERVED_DISCOUNT * 100),
        ),
    )


def _unused_functions(user_id: str, snapshot: InventorySnapshot) -> RecommendationCreate | None:
    unused = [f for f in snapshot.lambda_functions if f.invocations == 0]
    if not unused:
        return None
    count = len(unused)
    return _build(
        user_id,
        RecommendationType.LAMBDA_UNUSED,
        RecommendationPriority.LOW,
        RecommendationCategory.COMPUTE,
        title=f"Delete {count} unused Lambda function{_plural(count)}",
        description="Functions with zero invocations. Consider removing to reduce clutter.",
        monthly=count * UNUSED_FUNCTION_MONTHLY,
        difficulty="Easy",
        implementation_time="2 minutes",
        impact="No Impact",
        auto_implementable=False,
        details=UnusedFunctionsDetails(
            functions=[FlaggedFunction(name=f.name, runtime=f.runtime) for f in unused]
        ),
    )


RULES = (
    _idle_instances,
    _stopped_instances,
    _large_buckets,
    _underutilized_databases,
    _unattached_volumes,
    _reserved_instances,
    _unused_functions,
)


def evaluate_inventory(user_id: str, snapshot: InventorySnapshot) -> list[RecommendationCreate]:
    """Apply every rule to ``snapshot`` and collect the recommendations that fire."""
    recommendations = []
    for rule in RULES:
        recommendation = rule(user_id, snapshot)
        if recommendation is not None:
            recommendations.append(recommendation)
    return recommendations
