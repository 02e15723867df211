"""Bulk transfer engine: column buffers, pipelines and driver adapters."""
