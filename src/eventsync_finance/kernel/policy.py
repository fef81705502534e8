"""
Finance Policy - Business thresholds for the finance workflow

The FinancePolicy holds the knobs an operator may reasonably tune without
touching code: how long a justification for a destructive action must be,
when a category counts as "near its limit", and whether expense approval
is capped by the category allocation.
"""

from pydantic import BaseModel, Field

from eventsync_finance.budget.models import BudgetStatus


class FinancePolicy(BaseModel):
    """
    Business rules shared by handlers, projections and reports

    Defaults mirror how the platform has always behaved; the only
    hard rule most deployments touch is the reason length.
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    min_destructive_reason_length: int = Field(
        default=10,
        ge=1,
        description="Minimum trimmed length of the reason for invalidations and revocations",
    )

    near_limit_threshold: float = Field(
        default=0.90,
        gt=0.0,
        le=1.0,
        description="Category utilization ratio that raises a NEAR_BUDGET_LIMIT alert",
    )

    enforce_category_ceiling: bool = Field(
        default=False,
        description="Refuse expense approval when approved spend would exceed the allocation",
    )

    amendable_statuses: list[BudgetStatus] = Field(
        default=[BudgetStatus.APPROVED, BudgetStatus.PARTIALLY_APPROVED],
        description="Budget statuses that accept amendment requests",
    )

    model_config = {
        "json_schema_extra": {
            "description": "Business thresholds governing the finance workflow"
        },
    }
