"""
Monitoring Contracts

Output: PerformanceMetrics (read-only snapshot from MonitoringService)
"""

from pydantic import BaseModel, Field


class SourceStats(BaseModel):
    """Counters for one strategy source."""

    total_attempts: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate: float = Field(default=0.0, description="Percent, 2 decimals")
    avg_generation_time_ms: float = Field(
        default=0.0, description="Mean over the last 100 successful attempts"
    )


class ValidationStats(BaseModel):
    total_validations: int = 0
    passed_count: int = 0
    failed_count: int = 0
    auto_fixed_count: int = 0
    auto_fix_rate: float = Field(default=0.0, description="Percent, 2 decimals")


class PerformanceMetrics(BaseModel):
    """Snapshot of strategy-generation performance."""

    ai: SourceStats = Field(default_factory=SourceStats)
    rule_based: SourceStats = Field(default_factory=SourceStats)
    fallback: SourceStats = Field(default_factory=SourceStats)
    total_tokens_used: int = 0
    validation: ValidationStats = Field(default_factory=ValidationStats)

    @property
    def total_attempts(self) -> int:
        return self.ai.total_attempts + self.rule_based.total_attempts + self.fallback.total_attempts


class CostEstimate(BaseModel):
    """Estimated LLM spend in USD."""

    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
