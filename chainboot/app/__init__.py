"""Application composition layer for snapshot bootstrap.

Modules in this package wire settings, adapters and use cases into the
orchestrator that front-ends (REST service, node startup) drive.
"""
