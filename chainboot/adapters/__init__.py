"""Adapter package for external I/O implementations.

Purpose:
    Collect concrete implementations for domain ports (HTTP download and ZIP
    extraction) used by the bootstrap use cases.

Dependencies:
    ``http_client`` depends on ``requests``; ``zip_archive`` on the standard
    library ``zipfile`` module.

Call context:
    Imported by ``chainboot.app.context`` for runtime wiring and by tests for
    transport-level behavior verification.
"""
