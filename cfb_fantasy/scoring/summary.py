"""Result objects shared by the scoring stages and the pipeline."""

from dataclasses import dataclass, field

from .exceptions import IntegrityIssue


@dataclass
class StageResult:
    """What one stage did for one unit of scope (a week, a league-week, ...)."""

    stage: str
    scope: str
    written: int = 0
    deleted: int = 0
    skipped: int = 0
    failures: list[str] = field(default_factory=list)
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class RunSummary:
    """Successes, skips, failures and integrity findings of a pipeline run."""

    mode: str
    season_year: int
    weeks: list[int] = field(default_factory=list)
    league_ids: list[int] = field(default_factory=list)
    stages: list[StageResult] = field(default_factory=list)
    issues: list[IntegrityIssue] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    def add(self, result: StageResult) -> StageResult:
        self.stages.append(result)
        self.issues.extend(result.issues)
        self.failures.extend(result.failures)
        return result

    @property
    def rows_written(self) -> int:
        return sum(stage.written for stage in self.stages)

    @property
    def rows_deleted(self) -> int:
        return sum(stage.deleted for stage in self.stages)

    @property
    def skipped(self) -> int:
        return sum(stage.skipped for stage in self.stages)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def totals_by_stage(self) -> dict[str, dict[str, int]]:
        """Per-stage counters, handy for CLI tables and JSON responses."""
        totals: dict[str, dict[str, int]] = {}
        for stage in self.stages:
            counters = totals.setdefault(stage.stage, {"written": 0, "deleted": 0, "skipped": 0, "failed": 0})
            counters["written"] += stage.written
            counters["deleted"] += stage.deleted
            counters["skipped"] += stage.skipped
            counters["failed"] += len(stage.failures)
        return totals

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "season_year": self.season_year,
            "weeks": self.weeks,
            "league_ids": self.league_ids,
            "succeeded": self.succeeded,
            "rows_written": self.rows_written,
            "rows_deleted": self.rows_deleted,
            "skipped": self.skipped,
            "stages": self.totals_by_stage(),
            "failures": list(self.failures),
            "issues": [str(issue) for issue in self.issues],
        }
