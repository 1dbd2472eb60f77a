"""
Export of computed values.
"""

from .csv_sink import CsvExportSink, CSV_HEADER

__all__ = [
    'CsvExportSink',
    'CSV_HEADER',
]
