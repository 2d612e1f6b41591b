"""Background analysis queue for fire-and-forget uploads.

One worker task, started and cancelled by the application lifespan, drains an
``asyncio.Queue`` of document ids. Each job runs in its own DB session; a
failed job is retried up to ``ANALYSIS_MAX_ATTEMPTS`` times and then left
``pending`` with an ERROR log line. Nothing propagates back to the caller
that submitted the job.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_compliance.analysis.scoring import ThresholdPolicy
from hr_compliance.analysis.service import AnalysisService, Classifier
from hr_compliance.config import settings
from hr_compliance.recurring.models import RecurringDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisJob:
    document_id: uuid.UUID
    policy: ThresholdPolicy
    attempt: int = 1


class AnalysisTaskQueue:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: Classifier,
        *,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ) -> None:
        self._session_factory = session_factory
        self._client = client
        self._max_attempts = max_attempts or settings.ANALYSIS_MAX_ATTEMPTS
        self._retry_delay = (
            retry_delay if retry_delay is not None else settings.ANALYSIS_RETRY_DELAY_SECONDS
        )
        self._queue: asyncio.Queue[AnalysisJob] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="analysis-worker")
        logger.info("Analysis worker started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        if not self._queue.empty():
            logger.warning("Analysis worker stopped with %d job(s) queued", self._queue.qsize())
        logger.info("Analysis worker stopped")

    def submit(self, document_id: uuid.UUID, policy: ThresholdPolicy) -> None:
        """Enqueue *document_id*; the document must already be committed."""
        self._queue.put_nowait(AnalysisJob(document_id=document_id, policy=policy))
        logger.debug("Queued analysis for %s (%s)", document_id, policy.name)

    async def join(self) -> None:
        """Wait until every queued job (including retries) has finished."""
        await self._queue.join()

    # ── Worker ──────────────────────────────────────────────────────

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._handle(job)
            except Exception:
                logger.exception("Analysis job for %s crashed", job.document_id)
            finally:
                self._queue.task_done()

    async def _handle(self, job: AnalysisJob) -> None:
        async with self._session_factory() as session:
            document = await session.get(RecurringDocument, job.document_id)
            if document is None:
                logger.warning("Queued document %s no longer exists", job.document_id)
                return
            outcome = await AnalysisService.process_document(
                session, self._client, document, job.policy,
            )
            if outcome.succeeded:
                await session.commit()
                return
            await session.rollback()

        if job.attempt >= self._max_attempts:
            logger.error(
                "Analysis for %s gave up after %d attempt(s): %s",
                job.document_id, job.attempt, outcome.error,
            )
            return

        logger.info(
            "Retrying analysis for %s (attempt %d/%d)",
            job.document_id, job.attempt + 1, self._max_attempts,
        )
        await asyncio.sleep(self._retry_delay)
        self._queue.put_nowait(
            AnalysisJob(job.document_id, job.policy, attempt=job.attempt + 1)
        )


def get_analysis_queue(request: Request) -> AnalysisTaskQueue:
    """FastAPI dependency: the queue created by the application lifespan."""
    return request.app.state.analysis_queue
