"""
vitalstats package
==================

Civil-registry statistics exporter: turns birth or death records into a
populated Excel report (record listing plus per-municipality summaries).

- The CLI entry point is in `vitalstats/cli.py`.
- The aggregation engine (summaries, listings) is in `vitalstats/engine.py`.
- Record loading is in `vitalstats/loader.py`; the workbook writer in
  `vitalstats/report.py`.
"""

__version__ = '0.1.0'
