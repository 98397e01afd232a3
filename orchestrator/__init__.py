"""
Orchestration package for driving the pipeline through the build lifecycle.

The driver sequences the phases Annotate -> Export -> Report for every
build; export runs only when activation enables it.
"""

from .export_report import REPORT_FILENAME, ExportReport
from .lifecycle import PAGE_RENDERED, SITE_ASSEMBLED, LifecycleEvents
from .pipeline_driver import PipelineDriver

__all__ = [
    'ExportReport',
    'REPORT_FILENAME',
    'LifecycleEvents',
    'PAGE_RENDERED',
    'SITE_ASSEMBLED',
    'PipelineDriver'
]
