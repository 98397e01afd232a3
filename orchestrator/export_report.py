"""
Export report generator for aggregating run statistics.

Combines annotation statistics from the pipeline driver with the export
result into one report, formats it for the console and writes it as JSON.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from models import ExportConfiguration, ExportResult

logger = logging.getLogger('site_export_pipeline.orchestrator.report')

REPORT_FILENAME = 'export-report.json'


class ExportReport:
    """Builds, formats and saves the report of one pipeline run."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('site_export_pipeline.orchestrator.report')

    def generate_report(
        self,
        export_config: ExportConfiguration,
        driver_stats: Dict[str, Any],
        export_result: Optional[ExportResult],
        duration: float
    ) -> Dict[str, Any]:
        """
        Generate the run report.

        Args:
            export_config: Resolved export configuration
            driver_stats: ``PipelineDriver.get_stats()`` output
            export_result: Result of the export phase, None if it never ran
            duration: Total run duration in seconds

        Returns:
            Report dictionary
        """
        result = export_result or ExportResult(skipped=True)

        summary = {
            'export_enabled': export_config.enabled,
            'activation_source': export_config.source,
            'dry_run': export_config.dry_run,
            'pages': result.pages_total,
            'pages_annotated': driver_stats.get('pages_annotated', 0),
            'pages_converted': result.pages_converted,
            'pages_unchanged': result.pages_unchanged,
            'pages_failed': result.pages_failed,
            'annotation_failures': driver_stats.get('annotation_failures', 0),
            'duration_seconds': round(duration, 3),
            'duration_formatted': self._format_duration(duration)
        }
        summary['total_errors'] = summary['pages_failed'] + summary['annotation_failures']

        report = {
            'summary': summary,
            'output_directory': export_config.output_directory,
            'index_path': result.index_path,
            'written_files': sorted(result.written_files),
            'errors': self._build_error_summary(driver_stats, result)
        }

        self.logger.info(
            f"Report generated: {summary['pages']} pages, {summary['total_errors']} errors"
        )
        return report

    def _build_error_summary(self, driver_stats: Dict[str, Any], result: ExportResult) -> List[Dict[str, Any]]:
        errors = list(driver_stats.get('errors', []))
        for error in result.errors:
            entry = {'phase': 'export'}
            entry.update(error)
            errors.append(entry)
        return errors

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            secs = int(seconds % 60)
            return f"{minutes}m {secs}s"
        else:
            hours = int(seconds // 3600)
            minutes = int((seconds % 3600) // 60)
            secs = int(seconds % 60)
            return f"{hours}h {minutes}m {secs}s"

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format report for console display.

        Args:
            report: Report dictionary

        Returns:
            Formatted console string
        """
        summary = report.get('summary', {})
        sections = []

        sections.append("=" * 60)
        sections.append("EXPORT REPORT")
        sections.append("=" * 60)
        sections.append("")

        enabled = 'enabled' if summary.get('export_enabled') else 'disabled'
        sections.append("Summary:")
        sections.append(f"  Export:      {enabled} ({summary.get('activation_source', 'default')})")
        sections.append(f"  Pages:       {summary.get('pages', 0)}")
        sections.append(f"  Annotated:   {summary.get('pages_annotated', 0)}")
        if summary.get('export_enabled'):
            label = "Converted:" if not summary.get('dry_run') else "Converted*:"
            sections.append(f"  {label:<12} {summary.get('pages_converted', 0)}")
            sections.append(f"  Unchanged:   {summary.get('pages_unchanged', 0)}")
            sections.append(f"  Failed:      {summary.get('pages_failed', 0)}")
            if report.get('index_path'):
                sections.append(f"  Index:       {report['index_path']}")
        sections.append(f"  Duration:    {summary.get('duration_formatted', '0s')}")

        errors = report.get('errors', [])
        if errors:
            sections.append("")
            sections.append(f"Errors ({len(errors)}):")
            sections.append("-" * 60)
            for error in errors[:10]:
                sections.append(
                    f"  [{error.get('phase', '?')}] {error.get('page_url', '?')}: {error.get('error', '')}"
                )
            if len(errors) > 10:
                sections.append(f"  ... and {len(errors) - 10} more")

        if summary.get('dry_run'):
            sections.append("")
            sections.append("* Dry run: no files were written")

        sections.append("=" * 60)
        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> Optional[str]:
        """
        Export report to JSON file.

        Args:
            report: Report dictionary
            filepath: Output file path

        Returns:
            Path written, or None if writing failed
        """
        try:
            path = Path(filepath)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)
                f.write('\n')
        except OSError as e:
            self.logger.error(f"Failed to export JSON report: {str(e)}")
            return None

        self.logger.info(f"JSON report exported to {filepath}")
        return str(filepath)


__all__ = ['ExportReport', 'REPORT_FILENAME']
