"""Ingestion layer.

Helpers that turn raw transport payloads (radio service data, cloud
bodies, webhook contexts) into normalized capability values, plus the
webhook body parser and router.
"""

__all__: list[str] = []
