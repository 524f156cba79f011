"""
vrng.tests
----------
Tests for the VRNG consumer.

Notes:
- Every test builds its own Metrics on a private CollectorRegistry so the
  process-wide Prometheus registry is never touched.
- Raw values are arbitrary constants or derived with derive_raw_value; none of
  them carry any security meaning.
"""
