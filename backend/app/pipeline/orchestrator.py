"""
PageBinder — Batch Orchestrator.

Runs one conversion as a state machine:

  IDLE → PREPARING → PROCESSING (i of n) → FINALIZING → DONE
                                                      ↘ ABORTED

Records are processed strictly one at a time, each sub-step awaited
before the next:

  read → transcode (HEIC only) → decode → rotate → layout → add page

A failing record is marked FAILED and skipped; it never aborts the
batch. Only an empty batch or a batch where every record failed is
fatal.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Awaitable, Callable, TypeVar

from app.core.config import PipelineConfig, settings
from app.errors import (
    EmptyBatchError,
    NoImagesProcessedError,
    PageBinderError,
    StepTimeoutError,
)
from app.imaging.decode import SafeDecoder, platform_profile
from app.imaging.heic import Transcoder, requires_transcoding, transcode_heic
from app.imaging.rotate import rotate_surface
from app.imaging.sources import read_source
from app.models.job import (
    ArtifactMetadata,
    BatchResult,
    BatchState,
    ConversionOptions,
    ProcessingOutcome,
    RecordStatus,
    StepTiming,
)
from app.models.record import ImageRecord
from app.pdf.image_to_pdf import PdfAssembler
from app.pdf.layout import compute_geometry, page_dimensions
from app.pdf.verify import PDFInspector
from app.pipeline.events import OutcomeEvent, ProgressBus, ProgressEvent, batch_percent
from app.pipeline.order import resolve
from app.pipeline.store import ImageStore
from app.utils.logging import logger

T = TypeVar("T")


def build_decoder(config: PipelineConfig) -> SafeDecoder:
    return SafeDecoder(
        profile=platform_profile(config.platform, config.mobile_max_input_mb),
        max_dimension=config.max_dimension,
    )


class PipelineContext:
    """Mutable context passed through pipeline steps."""

    def __init__(self):
        self.sequence: list[ImageRecord] = []
        self.assembler: PdfAssembler | None = None
        self.final_pdf: bytes = b""
        self.filename: str = ""
        self.artifact: ArtifactMetadata | None = None
        self.warnings: list[str] = []


class BatchOrchestrator:
    """
    State-machine orchestrator for one image → PDF conversion.

    Collects a ProcessingOutcome per record and publishes progress to the
    bus; rendering that progress is left to subscribers.
    """

    def __init__(
        self,
        store: ImageStore,
        options: ConversionOptions | None = None,
        transcoder: Transcoder | None = None,
        decoder: SafeDecoder | None = None,
        config: PipelineConfig | None = None,
        bus: ProgressBus | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.batch_id = uuid.uuid4().hex[:12]
        self.store = store
        self.options = options or ConversionOptions(sort_key=store.order.sort_key)
        self.config = config or settings.pipeline
        self.transcoder = transcoder
        self.decoder = decoder or build_decoder(self.config)
        self.bus = bus or ProgressBus()
        self.clock = clock
        self.state = BatchState.IDLE
        self.ctx = PipelineContext()
        self.outcomes: list[ProcessingOutcome] = []
        self.timings: list[StepTiming] = []

    def _record_step(self, name: str, start: float, status: str = "ok", detail: str = ""):
        ms = int((time.perf_counter() - start) * 1000)
        self.timings.append(StepTiming(step=name, duration_ms=ms, status=status, detail=detail))
        symbol = "✓" if status == "ok" else ("⊘" if status == "skipped" else "✗")
        logger.info("  %s %s — %dms %s", symbol, name, ms, detail)

    async def run(self) -> BatchResult:
        """Execute the full pipeline. Returns a complete BatchResult."""
        logger.info("=" * 60)
        logger.info("[%s] Batch starting (%d images, %s)", self.batch_id, len(self.store), self.options.orientation)
        logger.info("=" * 60)
        batch_start = time.perf_counter()

        try:
            await self._step_prepare()
            await self._step_process()
            await self._step_finalize()
            self.state = BatchState.DONE
        except Exception:
            self.state = BatchState.ABORTED
            raise

        total_ms = int((time.perf_counter() - batch_start) * 1000)
        logger.info("=" * 60)
        logger.info(
            "[%s] Batch complete — %d/%d pages, %d bytes, %dms",
            self.batch_id, self.ctx.artifact.pages, len(self.outcomes),
            len(self.ctx.final_pdf), total_ms,
        )
        logger.info("=" * 60)
        return self.result()

    def result(self) -> BatchResult:
        return BatchResult(
            batch_id=self.batch_id,
            state=self.state,
            orientation=self.options.orientation,
            artifact=self.ctx.artifact,
            outcomes=self.outcomes,
            timings=self.timings,
            warnings=self.ctx.warnings,
        )

    async def _step_prepare(self):
        t = time.perf_counter()
        self.state = BatchState.PREPARING
        if len(self.store) == 0:
            self._record_step("prepare", t, "failed", "empty batch")
            raise EmptyBatchError()

        self.ctx.sequence = resolve(self.store)
        self.outcomes = [
            ProcessingOutcome(identity=r.identity, name=r.name) for r in self.ctx.sequence
        ]
        self.ctx.assembler = PdfAssembler(jpeg_quality=self.config.jpeg_quality)
        order = "manual" if self.store.order.is_explicit else self.store.order.sort_key.value
        self._record_step("prepare", t, detail=f"{len(self.ctx.sequence)} images, order={order}")

    async def _step_process(self):
        t = time.perf_counter()
        self.state = BatchState.PROCESSING
        total = len(self.ctx.sequence)
        for i, record in enumerate(self.ctx.sequence):
            logger.info("  [%d/%d] %s", i + 1, total, record.name)
            await self._process_record(i, record)
        ok = sum(1 for o in self.outcomes if o.status == RecordStatus.SUCCESS)
        self._record_step("process", t, detail=f"{ok}/{total} succeeded")

    async def _run_stage(self, outcome: ProcessingOutcome, percent: int, stage: str, work: Awaitable[T]) -> T:
        self._enter_stage(outcome, percent, stage)
        timeout = self.config.step_timeout
        if timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, timeout)
        except asyncio.TimeoutError as exc:
            raise StepTimeoutError(stage, timeout) from exc

    def _enter_stage(self, outcome: ProcessingOutcome, percent: int, stage: str) -> None:
        outcome.status = RecordStatus.IN_PROGRESS
        outcome.stage = stage
        self.bus.publish(ProgressEvent(name=outcome.name, stage=stage, percent=percent))

    async def _process_record(self, index: int, record: ImageRecord) -> None:
        outcome = self.outcomes[index]
        total = len(self.ctx.sequence)
        percent = batch_percent(index, total)
        t = time.perf_counter()

        try:
            data = await self._run_stage(outcome, percent, "reading", read_source(record.source, record.name))

            if requires_transcoding(record.name):
                data = await self._run_stage(
                    outcome, percent, "transcoding",
                    transcode_heic(data, self.transcoder, record.name, self.config.heic_quality),
                )

            surface = await self._run_stage(outcome, percent, "decoding", self.decoder.decode(data, record.name))

            self._enter_stage(outcome, percent, "rotating")
            surface = rotate_surface(surface, record.rotation)

            self._enter_stage(outcome, percent, "placing")
            page_w, page_h = page_dimensions(self.options.orientation)
            geometry = compute_geometry(
                page_w, page_h, surface.width, surface.height,
                margin=self.config.page_margin_mm,
                px_to_mm=self.config.px_to_mm,
                shrink_factor=self.config.shrink_factor,
            )
            outcome.page_number = self.ctx.assembler.add_page(surface, geometry)
        except PageBinderError as exc:
            logger.warning("  ✗ %s failed at %s: %s", record.name, outcome.stage, exc.message)
            self._fail(outcome, exc.message, exc.code)
        except Exception as exc:
            logger.exception("  ✗ %s failed at %s", record.name, outcome.stage)
            self._fail(outcome, str(exc) or type(exc).__name__, "UNEXPECTED_ERROR")
        else:
            outcome.status = RecordStatus.SUCCESS
            self.bus.publish(OutcomeEvent(name=record.name, status=RecordStatus.SUCCESS))

        status = "ok" if outcome.status == RecordStatus.SUCCESS else "failed"
        self._record_step(f"image {record.name}", t, status, outcome.reason)
        self.bus.publish(ProgressEvent(
            name=record.name,
            stage="done" if status == "ok" else "failed",
            percent=batch_percent(index + 1, total),
        ))

    def _fail(self, outcome: ProcessingOutcome, reason: str, code: str) -> None:
        outcome.status = RecordStatus.FAILED
        outcome.reason = reason
        outcome.error_code = code
        outcome.page_number = None
        self.bus.publish(OutcomeEvent(name=outcome.name, status=RecordStatus.FAILED, reason=reason))

    async def _step_finalize(self):
        t = time.perf_counter()
        succeeded = [o for o in self.outcomes if o.status == RecordStatus.SUCCESS]
        if not succeeded:
            self.ctx.assembler.doc.close()
            self._record_step("finalize", t, "failed", "no pages")
            raise NoImagesProcessedError([f"{o.name}: {o.reason}" for o in self.outcomes])

        self.state = BatchState.FINALIZING
        self.ctx.final_pdf = self.ctx.assembler.finish()
        self.ctx.filename = f"images_{int(self.clock() * 1000)}.pdf"

        inspection = PDFInspector().inspect(self.ctx.final_pdf, expected_pages=len(succeeded))
        if not inspection.passed:
            self.ctx.warnings.append(f"PDF inspection failed: {', '.join(inspection.failures)}")

        self.ctx.artifact = ArtifactMetadata(
            filename=self.ctx.filename,
            size_bytes=len(self.ctx.final_pdf),
            pages=inspection.page_count,
            content_hash=inspection.content_hash,
        )
        self._record_step("finalize", t, detail=f"{inspection.page_count} pages → {self.ctx.filename}")
