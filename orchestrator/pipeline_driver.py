"""
Pipeline driver wiring annotation and export to the build lifecycle.

The driver owns the phase machine IDLE -> ANNOTATING -> EXPORTING -> DONE.
Annotation runs for every page on every build; export runs only when the
resolved ExportConfiguration enables it.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from annotators import MetadataAnnotator
from errors import PipelineStateError
from exporters import ExportController
from logger import ProgressTracker, log_section
from models import ExportConfiguration, ExportResult, PipelinePhase, SitePage
from .lifecycle import PAGE_RENDERED, SITE_ASSEMBLED, LifecycleEvents

logger = logging.getLogger('site_export_pipeline.orchestrator.driver')


class PipelineDriver:
    """Receives lifecycle events and advances the pipeline phases."""

    def __init__(self, export_config: ExportConfiguration,
                 annotator: Optional[MetadataAnnotator] = None,
                 controller: Optional[ExportController] = None,
                 logger: Optional[logging.Logger] = None,
                 show_progress: bool = False):
        """
        Initialize pipeline driver.

        Args:
            export_config: Activation and output settings resolved at startup
            annotator: Metadata annotator; defaults to one without provenance
            controller: Export controller; created from export_config when needed
            logger: Optional logger instance
            show_progress: Passed to the default export controller
        """
        self.export_config = export_config
        self.logger = logger or logging.getLogger('site_export_pipeline.orchestrator.driver')
        self.annotator = annotator or MetadataAnnotator(logger=self.logger)
        self.controller = controller
        self.show_progress = show_progress

        self.phase = PipelinePhase.IDLE
        self.export_result: Optional[ExportResult] = None
        self._annotated = set()
        self.stats: Dict[str, Any] = {
            'pages_annotated': 0,
            'annotation_failures': 0,
            'errors': [],
            'annotation_duration': 0.0,
            'export_duration': 0.0
        }

        self.logger.info(
            f"PipelineDriver initialized: export {'enabled' if export_config.enabled else 'disabled'} "
            f"({export_config.source})"
        )

    def register(self, events: LifecycleEvents) -> None:
        """Subscribe to the page-rendered and site-assembled events."""
        events.on(PAGE_RENDERED, self.page_rendered)
        events.on(SITE_ASSEMBLED, self.site_assembled)

    def page_rendered(self, page: SitePage) -> SitePage:
        """
        Annotate a freshly rendered page.

        Raises:
            PipelineStateError: If the site has already been assembled
        """
        if self.phase == PipelinePhase.IDLE:
            self._enter(PipelinePhase.ANNOTATING)
        elif self.phase != PipelinePhase.ANNOTATING:
            raise PipelineStateError(
                f"page_rendered received for {page.url} in phase {self.phase.value}"
            )

        if page.url in self._annotated:
            self.logger.debug(f"Page already annotated, skipping: {page.url}")
            return page

        started = time.time()
        self._annotate(page)
        self.stats['annotation_duration'] += time.time() - started
        return page

    def site_assembled(self, pages: Iterable[SitePage]) -> ExportResult:
        """
        Finish annotation, run the export when enabled and finish the run.

        Args:
            pages: Complete page set of the site

        Returns:
            ExportResult; ``skipped`` is True when export was not active

        Raises:
            PipelineStateError: If the site was already assembled
            DuplicatePageIdentityError: Propagated from the export controller
            OutputDirectoryError: Propagated from the export controller
        """
        if self.phase not in (PipelinePhase.IDLE, PipelinePhase.ANNOTATING):
            raise PipelineStateError(f"site_assembled received in phase {self.phase.value}")

        pages = list(pages)
        if self.phase == PipelinePhase.IDLE:
            self._enter(PipelinePhase.ANNOTATING)

        pending = [page for page in pages if page.url not in self._annotated]
        if pending:
            log_section("Annotation")
            started = time.time()
            with ProgressTracker(total_items=len(pending), item_type='pages') as tracker:
                for page in pending:
                    tracker.increment(success=self._annotate(page))
            self.stats['annotation_duration'] += time.time() - started

        self._enter(PipelinePhase.EXPORTING)
        started = time.time()
        if self.export_config.enabled:
            controller = self.controller or ExportController(
                self.export_config, logger=self.logger, show_progress=self.show_progress
            )
            result = controller.run_export(pages)
        else:
            self.logger.info("Export not active for this build, skipping conversion")
            result = ExportResult(pages_total=len(pages), skipped=True)
        self.stats['export_duration'] = time.time() - started

        self.export_result = result
        self._enter(PipelinePhase.DONE)
        return result

    def run(self, pages: Iterable[SitePage], events: Optional[LifecycleEvents] = None) -> ExportResult:
        """Emit page_rendered for every page, then site_assembled."""
        pages = list(pages)
        events = events or LifecycleEvents()
        self.register(events)

        for page in pages:
            events.emit(PAGE_RENDERED, page)

        results = events.emit(SITE_ASSEMBLED, pages)
        return results[-1] if results else self.export_result

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self.stats)
        stats['errors'] = list(self.stats['errors'])
        stats['phase'] = self.phase.value
        return stats

    def _annotate(self, page: SitePage) -> bool:
        """Annotate one page; failures are recorded and never stop the run."""
        self._annotated.add(page.url)
        try:
            self.annotator.annotate(page)
        except Exception as e:
            self.logger.error(f"Failed to annotate page {page.url}: {str(e)}")
            self.stats['annotation_failures'] += 1
            self.stats['errors'].append({
                'phase': 'annotation',
                'page_url': page.url,
                'page_title': page.title,
                'error': str(e)
            })
            return False

        self.stats['pages_annotated'] += 1
        return True

    def _enter(self, phase: PipelinePhase) -> None:
        order: List[PipelinePhase] = list(PipelinePhase)
        if order.index(phase) != order.index(self.phase) + 1:
            raise PipelineStateError(f"Cannot move from {self.phase.value} to {phase.value}")
        self.logger.debug(f"Pipeline phase: {self.phase.value} -> {phase.value}")
        self.phase = phase


__all__ = ['PipelineDriver']
