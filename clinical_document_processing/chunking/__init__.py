"""
Chunking Layer - Splitting Documents into Ordered Chunks

Submodules:
    document_chunker.py → DocumentChunkerProtocol and SectionDocumentChunker

Author: Shubham Singh
Date: January 2026
"""

from clinical_document_processing.chunking.document_chunker import (
    DocumentChunkerProtocol,
    SectionDocumentChunker,
    estimate_tokens,
)

__all__ = ["DocumentChunkerProtocol", "SectionDocumentChunker", "estimate_tokens"]
