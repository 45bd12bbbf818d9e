"""Recommendation-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class RecommendationType(str, Enum):
    """Rule that produced a recommendation."""

    EC2_IDLE = "EC2_IDLE"
    EC2_STOPPED = "EC2_STOPPED"
    S3_LIFECYCLE = "S3_LIFECYCLE"
    RDS_RIGHTSIZING = "RDS_RIGHTSIZING"
    EBS_UNUSED = "EBS_UNUSED"
    RESERVED_INSTANCES = "RESERVED_INSTANCES"
    LAMBDA_UNUSED = "LAMBDA_UNUSED"


class RecommendationPriority(str, Enum):
    """Recommendation priority levels."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# Listing order: High first
PRIORITY_RANK = {
    RecommendationPriority.HIGH.value: 0,
    RecommendationPriority.MEDIUM.value: 1,
    RecommendationPriority.LOW.value: 2,
}


class RecommendationCategory(str, Enum):
    """Recommendation categories."""

    COMPUTE = "Compute"
    STORAGE = "Storage"
    DATABASE = "Database"


class VerificationStatus(str, Enum):
    """Outcome of the last verification run."""

    VERIFIED = "verified"
    FAILED = "failed"


# =============================================================================
# Resource details: one variant per recommendation type
# =============================================================================


class FlaggedInstance(BaseModel):
    id: str
    name: str
    cpu: float | None = None


class FlaggedBucket(BaseModel):
    name: str
    size_bytes: int
    size_display: str | None = None


class FlaggedDatabase(BaseModel):
    identifier: str
    cpu: float | None = None
    instance_class: str | None = None


class FlaggedVolume(BaseModel):
    volume_id: str
    size: str
    size_gb: int
    volume_type: str | None = None


class FlaggedFunction(BaseModel):
    name: str
    runtime: str | None = None


class IdleInstancesDetails(BaseModel):
    """Running instances below the idle CPU threshold."""

    recommendation_type: Literal["EC2_IDLE"] = "EC2_IDLE"
    instances: list[FlaggedInstance]


class StoppedInstancesDetails(BaseModel):
    """Stopped instances still paying for attached storage."""

    recommendation_type: Literal["EC2_STOPPED"] = "EC2_STOPPED"
    instances: list[FlaggedInstance]


class LargeBucketsDetails(BaseModel):
    """Buckets large enough to benefit from lifecycle policies."""

    recommendation_type: Literal["S3_LIFECYCLE"] = "S3_LIFECYCLE"
    buckets: list[FlaggedBucket]


class UnderutilizedDatabasesDetails(BaseModel):
    """Databases below the rightsizing CPU threshold."""

    recommendation_type: Literal["RDS_RIGHTSIZING"] = "RDS_RIGHTSIZING"
    databases: list[FlaggedDatabase]


class UnattachedVolumesDetails(BaseModel):
    """Volumes not attached to any instance."""

    recommendation_type: Literal["EBS_UNUSED"] = "EBS_UNUSED"
    volumes: list[FlaggedVolume]


class ReservedInstancesDetails(BaseModel):
    """Steady running fleet that would be cheaper on reservations."""

    recommendation_type: Literal["RESERVED_INSTANCES"] = "RESERVED_INSTANCES"
    current_instances: int
    potential_savings_percentage: int = 40


class UnusedFunctionsDetails(BaseModel):
    """Functions with zero invocations."""

    recommendation_type: Literal["LAMBDA_UNUSED"] = "LAMBDA_UNUSED"
    functions: list[FlaggedFunction]


ResourceDetails = Annotated[
    Union[
        IdleInstancesDetails,
        StoppedInstancesDetails,
        LargeBucketsDetails,
        UnderutilizedDatabasesDetails,
        UnattachedVolumesDetails,
        ReservedInstancesDetails,
        UnusedFunctionsDetails,
    ],
    Field(discriminator="recommendation_type"),
]

resource_details_adapter: TypeAdapter[ResourceDetails] = TypeAdapter(ResourceDetails)


# =============================================================================
# Recommendations
# =============================================================================


class RecommendationCreate(BaseModel):
    """A recommendation produced by the rule evaluator, before persistence."""

    user_id: str
    recommendation_type: RecommendationType
    priority: RecommendationPriority
    category: RecommendationCategory
    title: str
    description: str
    estimated_monthly_savings: float
    estimated_yearly_savings: float
    difficulty: str
    implementation_time: str
    impact: str
    auto_implementable: bool
    resource_details: ResourceDetails


class Recommendation(BaseModel):
    """Persisted cost-saving recommendation."""

    id: int
    user_id: str
    recommendation_type: str
    priority: RecommendationPriority
    category: RecommendationCategory
    title: str
    description: str
    estimated_monthly_savings: float
    estimated_yearly_savings: float
    difficulty: str | None = None
    implementation_time: str | None = None
    impact: str | None = None
    auto_implementable: bool = False
    resource_details: ResourceDetails | None = None
    implemented: bool = False
    implemented_at: datetime | None = None
    actual_savings: float = 0.0
    verification_status: VerificationStatus | None = None
    verification_reason: str | None = None
    verified_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GenerateRecommendationsResponse(BaseModel):
    """Result of regenerating a user's recommendations."""

    success: bool = True
    count: int
    recommendations: list[Recommendation]


class RecommendationListResponse(BaseModel):
    success: bool = True
    count: int
    recommendations: list[Recommendation]


class CategorySummary(BaseModel):
    """Live recommendations in one category."""

    category: RecommendationCategory
    count: int
    potential_savings_monthly: float
    by_priority: dict[str, int] = Field(default_factory=dict)


class RecommendationSummaryResponse(BaseModel):
    success: bool = True
    summary: list[CategorySummary]


class SavingsPotential(BaseModel):
    """Total potential savings across unimplemented recommendations."""

    success: bool = True
    total_monthly_savings: float
    total_yearly_savings: float
    recommendation_count: int


class VerificationResult(BaseModel):
    """Outcome of re-checking a recommendation against fresh inventory."""

    verified: bool
    reason: str


class VerificationResponse(VerificationResult):
    success: bool = True


class ImplementRecommendationRequest(BaseModel):
    """Record that a recommendation was carried out."""

    actual_savings: float | None = Field(default=None, ge=0)


class ImplementRecommendationResponse(BaseModel):
    success: bool = True
    recommendation: Recommendation


class ActionRequest(BaseModel):
    """Request to run a cloud operation for a recommendation."""

    resource_id: str = Field(..., min_length=1, max_length=255)
    recommendation_id: int = Field(..., ge=1)


class ActionResponse(BaseModel):
    success: bool = True
    message: str
