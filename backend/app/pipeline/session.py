"""
PageBinder — Conversion session.

Owns the working set for one user and serialises access to it: while a
batch is converting, the store is locked against add/remove/rotate/
reorder and a second conversion is refused.
"""

from __future__ import annotations

from typing import Iterable

from app.core.config import PipelineConfig, settings
from app.errors import StoreLockedError
from app.imaging.heic import Transcoder
from app.models.job import BatchResult, ConversionOptions
from app.models.record import Candidate, SortKey
from app.pipeline.events import ProgressBus
from app.pipeline.intake import IntakeReport, intake
from app.pipeline.orchestrator import BatchOrchestrator
from app.pipeline.store import ImageStore


class ConversionSession:
    def __init__(
        self,
        transcoder: Transcoder | None = None,
        config: PipelineConfig | None = None,
        options: ConversionOptions | None = None,
    ):
        self.transcoder = transcoder
        self.config = config or settings.pipeline
        self.options = options or ConversionOptions()
        self.store = ImageStore().with_sort_key(self.options.sort_key)
        self.bus = ProgressBus()
        self.last_pdf: bytes = b""
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def _guard(self, action: str) -> None:
        if self._busy:
            raise StoreLockedError(action)

    def add_files(self, candidates: Iterable[Candidate]) -> IntakeReport:
        self._guard("add images")
        report = intake(self.store, candidates)
        self.store = report.store
        return report

    def remove(self, identity: str) -> None:
        self._guard("remove images")
        self.store = self.store.remove(identity)

    def rotate(self, identity: str, rotation: int | None = None) -> int:
        self._guard("rotate images")
        self.store = self.store.rotate(identity, rotation)
        return self.store.get(identity).rotation

    def reorder(self, identities: Iterable[str]) -> None:
        self._guard("reorder images")
        self.store = self.store.reorder(identities)

    def set_options(self, options: ConversionOptions) -> None:
        self._guard("change settings")
        if options.sort_key != self.options.sort_key:
            self.store = self.store.with_sort_key(options.sort_key)
        self.options = options

    def set_sort_key(self, sort_key: SortKey) -> None:
        self.set_options(self.options.model_copy(update={"sort_key": SortKey(sort_key)}))

    async def convert(self) -> BatchResult:
        """Run one batch over a snapshot of the store; returns the result, PDF in last_pdf."""
        self._guard("start a conversion")
        self._busy = True
        try:
            orchestrator = BatchOrchestrator(
                store=self.store,
                options=self.options,
                transcoder=self.transcoder,
                config=self.config,
                bus=self.bus,
            )
            result = await orchestrator.run()
            self.last_pdf = orchestrator.ctx.final_pdf
            return result
        finally:
            self._busy = False
