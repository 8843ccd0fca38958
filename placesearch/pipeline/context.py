from __future__ import annotations

from dataclasses import dataclass, field, replace

from ..filters.models import FilterStats

STAGES = (
    "extraction",
    "geocode",
    "candidates",
    "post_filter",
    "city_filter",
    "grouping",
    "response_build",
)


@dataclass(frozen=True)
class StageTiming:
    stage: str
    started_at: float
    ended_at: float

    @property
    def duration_ms(self) -> float:
        return (self.ended_at - self.started_at) * 1000.0


@dataclass(frozen=True)
class PipelineFlags:
    degraded: bool = False
    partial: bool = False
    cache_source: str | None = None
    city_filter_skipped: bool = False


@dataclass(frozen=True)
class PipelineContext:
    """
    Per-request state threaded through the stages.

    Instances are immutable; each ``with_*`` method returns an augmented copy.
    Clock values are seconds from whatever monotonic clock the orchestrator uses.
    """

    request_id: str
    started_at: float
    finished_at: float | None = None
    timings: tuple[StageTiming, ...] = ()
    stats: tuple[FilterStats, ...] = ()
    flags: PipelineFlags = field(default_factory=PipelineFlags)

    def with_timing(self, stage: str, started_at: float, ended_at: float) -> PipelineContext:
        return replace(self, timings=self.timings + (StageTiming(stage, started_at, ended_at),))

    def with_stats(self, *stats: FilterStats) -> PipelineContext:
        return replace(self, stats=self.stats + stats)

    def with_flags(self, **changes) -> PipelineContext:
        return replace(self, flags=replace(self.flags, **changes))

    def finish(self, finished_at: float) -> PipelineContext:
        return replace(self, finished_at=finished_at)

    @property
    def total_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at) * 1000.0

    @property
    def durations_sum_ms(self) -> float:
        return sum(t.duration_ms for t in self.timings)

    @property
    def unaccounted_ms(self) -> float:
        return self.total_ms - self.durations_sum_ms
