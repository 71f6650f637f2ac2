"""
Routing Layer - Provider Selection

Submodules:
    chunk_router.py → Per-chunk and whole-document routing policy

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.routing.chunk_router import ChunkRouter

__all__ = ["ChunkRouter"]
