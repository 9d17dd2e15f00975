"""Command-line tools for TIKO.

- ``python -m tiko.cli <command>`` (or ``python -m tiko.cli.maintain``):
  batch maintenance jobs over the MongoDB collections: baseline scoring,
  venue shape audit/repair, artist genre enrichment, data quality report.
"""
