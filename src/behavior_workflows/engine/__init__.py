"""Workflow behavior engine components.

Provides:
- Settings loaded from .env
- Structured logging
- A small CLI surface
- Workflow lifecycle, trigger resolution and behavior scheduling
"""
