"""
Core modules for YoRC Stats.

This package contains document decoding, ingestion, calendar bucketing
and the temporal aggregations used by the reports.
"""
