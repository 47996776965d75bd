"""
Media Analysis Queue

In-process job queue that drives video analysis.

Job lifecycle (per video):
--------------------------
    pending → processing → done
    pending → processing → pending (retry scheduled) → ... → failed

- enqueue() is idempotent: a video already queued or running is not added
  again. A video waiting out a retry backoff is pulled forward instead.
- One worker task drains the queue serially; jobs never overlap.
- On dequeue the video is marked processing and analysis_attempts is
  incremented and committed before the media service is called.
- Success: summary/topics/timestamps and an embedding of
  "title summary topics category" are stored, status done, error cleared.
- Failure: with attempts < max_retries the video goes back to pending with
  the error recorded and a re-enqueue is scheduled after
  2^attempts * backoff_base_ms; otherwise it is marked failed.
- If the URL is edited while a job runs, the job's result is discarded and
  the video is queued again once the job finishes.

The durable state is the Video row; the queue itself is lost on restart
(pending videos can be re-queued from the admin API or at startup).

The scheduler is injectable so backoff can be driven by tests without
sleeping:

    scheduled = []
    queue = MediaAnalysisQueue(..., scheduler=lambda delay, cb: scheduled.append((delay, cb)))
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.logging import get_logger
from app.models.content import AnalysisStatus, Video
from app.services.cache import ResponseCache
from app.services.media_analysis import MediaUnderstandingClient
from app.services.processors.embedder import EmbeddingService

logger = get_logger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


@dataclass(frozen=True)
class AnalysisJob:
    video_id: int
    attempt: int = 0


def _loop_scheduler(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class MediaAnalysisQueue:
    """
    Serial background worker for video analysis.

    Usage:
    ------
    queue = MediaAnalysisQueue(AsyncSessionLocal, media_client, embedder)
    await queue.start()          # FastAPI lifespan startup
    queue.enqueue(video.id)      # from CRUD handlers, non-blocking
    await queue.stop()           # lifespan shutdown

    Tests can skip start() and drive the queue with process_next() /
    run_until_idle().
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        media_client: MediaUnderstandingClient,
        embedder: EmbeddingService,
        max_retries: Optional[int] = None,
        backoff_base_ms: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
        invalidate_cache: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.media_client = media_client
        self.embedder = embedder
        self.max_retries = max_retries or settings.VIDEO_ANALYSIS_MAX_RETRIES
        self.backoff_base_ms = backoff_base_ms or settings.VIDEO_ANALYSIS_BACKOFF_BASE_MS
        self.invalidate_cache = (
            settings.CACHE_INVALIDATE_ON_CONTENT_CHANGE if invalidate_cache is None else invalidate_cache
        )
        self._scheduler = scheduler or _loop_scheduler

        self._queue: asyncio.Queue[AnalysisJob] = asyncio.Queue()
        # Videos queued or running
        self._active: set[int] = set()
        # Videos waiting out a backoff → scheduler handle
        self._scheduled: dict[int, Any] = {}
        self._processing = False
        self._worker: Optional[asyncio.Task] = None

    # ---------- producer side ----------

    def enqueue(self, video_id: int, attempt: int = 0) -> bool:
        """
        Queue a video for analysis.

        Returns:
            False if the video was already queued or running
        """
        if video_id in self._active:
            logger.debug("analysis_enqueue_skipped", video_id=video_id, reason="already_queued")
            return False

        handle = self._scheduled.pop(video_id, None)
        if handle is not None and hasattr(handle, "cancel"):
            handle.cancel()

        self._active.add(video_id)
        self._queue.put_nowait(AnalysisJob(video_id=video_id, attempt=attempt))
        logger.info("analysis_enqueued", video_id=video_id, attempt=attempt, queued=self._queue.qsize())
        return True

    def backoff_seconds(self, attempts: int) -> float:
        return (2 ** attempts) * self.backoff_base_ms / 1000

    def _schedule_retry(self, video_id: int, attempts: int) -> None:
        delay = self.backoff_seconds(attempts)

        def _fire() -> None:
            # Already pulled forward by enqueue() or cancelled by stop()
            if video_id not in self._scheduled:
                return
            del self._scheduled[video_id]
            self.enqueue(video_id, attempt=attempts)

        # Placeholder first so _fire works even if the scheduler calls back synchronously
        self._scheduled[video_id] = None
        handle = self._scheduler(delay, _fire)
        if video_id in self._scheduled:
            self._scheduled[video_id] = handle

        logger.info("analysis_retry_scheduled", video_id=video_id, attempts=attempts, delay_seconds=delay)

    # ---------- worker side ----------

    async def start(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        self._worker = asyncio.create_task(self._run(), name="media-analysis-worker")
        logger.info("analysis_worker_started")

    async def stop(self) -> None:
        for handle in self._scheduled.values():
            if hasattr(handle, "cancel"):
                handle.cancel()
        self._scheduled.clear()

        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        logger.info("analysis_worker_stopped", dropped=self._queue.qsize())

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process_job(job)
            except Exception as e:
                # process_job records failures on the video; this is a bug or a dead database
                logger.error("analysis_worker_error", video_id=job.video_id, error=str(e), exc_info=True)
            finally:
                self._queue.task_done()

    async def process_next(self) -> bool:
        """Run the next queued job, if any. Returns False when the queue is empty."""
        try:
            job = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return False
        try:
            await self.process_job(job)
        finally:
            self._queue.task_done()
        return True

    async def run_until_idle(self) -> int:
        """Drain the queue; returns the number of jobs run."""
        count = 0
        while await self.process_next():
            count += 1
        return count

    async def process_job(self, job: AnalysisJob) -> Optional[str]:
        """
        Analyze one video and persist the outcome.

        Retries and re-runs are scheduled only after the video has left the
        active set, so a scheduler that calls back synchronously still
        re-queues it.

        Returns:
            The video's resulting analysis status, or None if it was deleted
            or its source replaced while the job ran
        """
        self._processing = True
        follow_up: list[Callable[[], Any]] = []
        try:
            async with self.session_factory() as db:
                return await self._process(db, job, follow_up)
        finally:
            self._processing = False
            self._active.discard(job.video_id)
            for action in follow_up:
                action()

    async def _process(
        self,
        db: AsyncSession,
        job: AnalysisJob,
        follow_up: list[Callable[[], Any]],
    ) -> Optional[str]:
        video = (
            await db.execute(select(Video).where(Video.id == job.video_id))
        ).scalar_one_or_none()
        if video is None:
            logger.warning("analysis_video_missing", video_id=job.video_id)
            return None

        video.analysis_status = AnalysisStatus.PROCESSING.value
        video.analysis_attempts = (video.analysis_attempts or 0) + 1
        attempts = video.analysis_attempts
        job_url = video.url
        await db.commit()

        logger.info("analysis_started", video_id=video.id, attempts=attempts)

        try:
            result = await self.media_client.analyze(job_url, video.title)
            embed_text = f"{video.title} {result.summary} {' '.join(result.key_topics)} {video.category}"
            embedding = await self.embedder.embed_text(embed_text)
        except Exception as e:
            if await self._superseded(db, video.id, job_url, follow_up):
                return None

            error = str(e) or type(e).__name__
            if attempts < self.max_retries:
                video.analysis_status = AnalysisStatus.PENDING.value
                video.analysis_error = error
                await db.commit()
                logger.warning("analysis_failed_retrying", video_id=video.id, attempts=attempts, error=error)
                follow_up.append(lambda: self._schedule_retry(job.video_id, attempts))
            else:
                video.analysis_status = AnalysisStatus.FAILED.value
                video.analysis_error = error
                await db.commit()
                logger.error("analysis_failed_permanently", video_id=video.id, attempts=attempts, error=error)
            return video.analysis_status

        if await self._superseded(db, video.id, job_url, follow_up):
            return None

        video.summary = result.summary
        video.key_topics = list(result.key_topics)
        video.timestamps = [stamp.model_dump() for stamp in result.timestamps]
        video.embedding = embedding
        video.analysis_status = AnalysisStatus.DONE.value
        video.analysis_error = None
        await db.commit()

        logger.info(
            "analysis_completed",
            video_id=video.id,
            attempts=attempts,
            topics=len(video.key_topics),
            patient_stage=result.patient_stage,
        )

        if self.invalidate_cache:
            await ResponseCache(db).invalidate()

        return video.analysis_status

    async def _superseded(
        self,
        db: AsyncSession,
        video_id: int,
        job_url: str,
        follow_up: list[Callable[[], Any]],
    ) -> bool:
        """
        Check whether the video changed under a running job.

        A deleted video is dropped. An edited URL means the admin already
        reset the row, so the result is discarded and the video re-queued.
        """
        current_url = await db.scalar(select(Video.url).where(Video.id == video_id))
        if current_url == job_url:
            return False

        if current_url is None:
            logger.info("analysis_discarded", video_id=video_id, reason="video_deleted")
        else:
            logger.info("analysis_discarded", video_id=video_id, reason="url_changed")
            follow_up.append(lambda: self.enqueue(video_id))
        return True

    # ---------- introspection ----------

    @property
    def is_processing(self) -> bool:
        return self._processing

    def status(self) -> dict[str, Any]:
        return {
            "queued": self._queue.qsize(),
            "scheduled_retries": len(self._scheduled),
            "is_processing": self._processing,
        }
