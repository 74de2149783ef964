from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from pathlib import Path

from themeshift.backup import BackupSet
from themeshift.backup import BackupStore
from themeshift.config import Config
from themeshift.errors import ApplyError
from themeshift.errors import ParseError
from themeshift.errors import TargetMissingError
from themeshift.steps import PlanStep
from themeshift.steps import StepResult
from themeshift.steps import StepStatus
from themeshift.theme import TargetKind

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StepFailure:
    step: PlanStep
    error: Exception


@dataclass(slots=True)
class ExecutionResult:
    timestamp: datetime
    backup: BackupSet | None = None
    steps: list[PlanStep] = field(default_factory=list)
    results: list[StepResult] = field(default_factory=list)
    failures: list[StepFailure] = field(default_factory=list)

    @property
    def backup_directory(self) -> Path | None:
        return self.backup.directory if self.backup else None

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def skipped(self) -> list[StepResult]:
        return [r for r in self.results if r.status == StepStatus.SKIPPED]

    @property
    def applied(self) -> list[StepResult]:
        return [r for r in self.results if r.status == StepStatus.APPLIED]


def backup_targets(plan: Sequence[PlanStep]) -> list[tuple[TargetKind, str]]:
    """Returns each distinct step path once, in plan order."""
    seen: set[str] = set()
    targets: list[tuple[TargetKind, str]] = []
    for step in plan:
        if step.path in seen:
            continue
        seen.add(step.path)
        targets.append((step.target, step.path))
    return targets


class Executor:
    """
    Runs a plan. In the normal mode every target is backed up before the
    first step is applied; a step that fails is recorded and the rest of
    the plan still runs.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.store = BackupStore(config.backup_root)

    def execute(
        self,
        plan: Sequence[PlanStep],
        dry_run: bool = False,
        skip_backup: bool = False,
        timestamp: datetime | None = None,
    ) -> ExecutionResult:
        result = ExecutionResult(timestamp=timestamp or datetime.now(), steps=list(plan))
        if not plan:
            logger.info('empty plan, nothing to do')
            return result

        if dry_run:
            for step in plan:
                logger.debug(f'dry run for {step}')
                result.results.append(StepResult(step, StepStatus.DRY_RUN))
            return result

        if skip_backup:
            logger.warning('skipping backup, changes cannot be restored')
        else:
            result.backup = self.store.create(backup_targets(plan), result.timestamp)

        for step in plan:
            result.results.append(self.run_step(step, result))
        return result

    def run_step(self, step: PlanStep, result: ExecutionResult) -> StepResult:
        try:
            return step.apply(self.config.settings)
        except TargetMissingError as exc:
            logger.warning(str(exc))
            return StepResult(step, StepStatus.SKIPPED, str(exc))
        except (ParseError, ApplyError, OSError, TypeError, ValueError) as exc:
            logger.error(f'{step.name}: {exc}')
            result.failures.append(StepFailure(step, exc))
            return StepResult(step, StepStatus.FAILED, str(exc))
