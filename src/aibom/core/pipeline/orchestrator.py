"""Pipeline orchestrator: runs detection units in order, then resumes.

Units run strictly one after another because later units read state that
earlier ones produce. Each unit receives only the state its ``requires``
set names. A unit that raises is logged and treated as having found
nothing; the run always continues.

The one resumable unit may return ``Paused``. Its checkpoint is held until
every other unit has run, then the unit is invoked exactly once more.
When the quota window resets within ``max_rate_limit_wait`` seconds the
orchestrator sleeps until then; otherwise it resumes immediately and
records the unit as partial if it pauses again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from aibom.config import AnalysisSettings
from aibom.context.base import RepositoryContext
from aibom.core.findings.scoring import confidence_for, total_score
from aibom.core.pipeline.session import AnalysisResult, AnalysisSession
from aibom.core.reconcile import merge_findings
from aibom.detectors.base import Complete, DetectionUnit, Paused, ResumeState, UnitResult
from aibom.detectors.registry import DetectorRegistry, default_pipeline

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

# Extra second slept past the reported reset so the window has rolled over.
RESET_GRACE_SECONDS = 1.0


class Orchestrator:
    """Run a registry of detection units against one repository.

    Args:
        registry: Units in execution order. Defaults to the full pipeline.
        settings: Run tunables. Defaults to ``AnalysisSettings()``.
        sleep: Awaitable sleep used while waiting for a quota reset.
        clock: Epoch-seconds clock used to compute that wait.
        on_progress: Called with ``(step, total, unit name)`` before each unit.

    Usage::

        orchestrator = Orchestrator()
        result = await orchestrator.run(context)
        print(result.score, result.confidence.label)
    """

    def __init__(
        self,
        registry: DetectorRegistry | None = None,
        settings: AnalysisSettings | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_pipeline()
        self.settings = settings or AnalysisSettings()
        self._sleep = sleep
        self._clock = clock
        self._on_progress = on_progress

    async def run(self, context: RepositoryContext) -> AnalysisResult:
        """Run every unit once, resume a paused unit, and reconcile."""
        started = self._clock()
        session = AnalysisSession(context=context, settings=self.settings)
        total = len(self.registry)
        logger.info(
            "Analyzing %s with %d units", context.info.full_name, len(self.registry)
        )

        for step, unit in enumerate(self.registry, start=1):
            self._progress(step, total, unit.name)
            await self._run_unit(session, unit)

        if session.paused is not None:
            self._progress(total + 1, total + 1, f"{session.paused[0].name} (resumed)")
            await self._resume(session)

        return self._result(session, started)

    # -- Unit execution ----------------------------------------------------

    async def _invoke(
        self, session: AnalysisSession, unit: DetectionUnit, resume: ResumeState | None = None
    ) -> UnitResult | None:
        try:
            return await unit.run(session.input_for(unit, resume))
        except Exception:
            logger.warning("Unit %s failed; continuing without it", unit.name, exc_info=True)
            return None

    async def _run_unit(self, session: AnalysisSession, unit: DetectionUnit) -> None:
        result = await self._invoke(session, unit)
        if result is None:
            return
        added = session.absorb(result.output)
        if unit.is_parser:
            logger.info("%s parsed", unit.name)
        else:
            logger.info("%s: %d findings", unit.name, len(added))

        if isinstance(result, Paused):
            if unit.resumable and session.paused is None:
                logger.info(
                    "%s paused with %d queries left; resuming after the other units",
                    unit.name, result.checkpoint.remaining_queries,
                )
                session.paused = (unit, result.checkpoint)
                session.paused_finding_ids = {f.id for f in added}
            else:
                logger.warning("%s paused but cannot be resumed; keeping partial results", unit.name)
                session.partial_units.append(unit.name)

    async def _resume(self, session: AnalysisSession) -> None:
        if session.paused is None:
            return
        unit, checkpoint = session.paused
        session.paused = None

        wait = None
        if checkpoint.rate_limit is not None:
            wait = checkpoint.rate_limit.seconds_until_reset(self._clock())
        if wait is not None and wait > 0:
            if wait <= self.settings.max_rate_limit_wait:
                logger.info("Waiting %.0fs for the search quota to reset", wait)
                await self._sleep(wait + RESET_GRACE_SECONDS)
            else:
                logger.warning(
                    "Quota resets in %.0fs, beyond the %.0fs cap; resuming %s immediately",
                    wait, self.settings.max_rate_limit_wait, unit.name,
                )

        result = await self._invoke(session, unit, checkpoint)
        if result is None:
            logger.warning("%s failed on resume; keeping partial results", unit.name)
            session.partial_units.append(unit.name)
            return

        # The resumed run rebuilds its findings from the checkpoint, so they
        # supersede the partial ones reported at pause time.
        session.discard_findings(session.paused_finding_ids)
        added = session.absorb(result.output)
        logger.info("%s resumed: %d findings", unit.name, len(added))

        if isinstance(result, Paused):
            logger.warning(
                "%s paused again with %d queries never executed; results are partial",
                unit.name, result.checkpoint.remaining_queries,
            )
            session.partial_units.append(unit.name)
        elif isinstance(result, Complete):
            logger.info("%s completed on resume", unit.name)

    # -- Helpers -----------------------------------------------------------

    def _progress(self, step: int, total: int, name: str) -> None:
        logger.debug("[%d/%d] %s", step, total, name)
        if self._on_progress is not None:
            self._on_progress(step, total, name)

    def _result(self, session: AnalysisSession, started: float) -> AnalysisResult:
        raw = list(session.findings)
        merged = merge_findings(raw)
        score = total_score(merged)
        confidence = confidence_for(score)
        if len(raw) != len(merged):
            logger.info("Merged %d dependency/code findings", len(raw) - len(merged))
        logger.info(
            "Analysis complete: %d findings, score %d (%s)",
            len(merged), score, confidence.label,
        )
        return AnalysisResult(
            repository=session.context.info,
            findings=tuple(merged),
            raw_findings=tuple(raw),
            score=score,
            confidence=confidence,
            analyzed_at=datetime.now(timezone.utc),
            total_files=len(session.context.files),
            file_paths=tuple(f.path for f in session.context.files),
            sbom_available=session.sbom_available,
            partial_units=tuple(session.partial_units),
            signals=dict(session.signals),
            parsed_docs=session.parsed_docs,
            duration_seconds=round(self._clock() - started, 3),
        )
