"""
Content Processors Package

Modules:
--------
- embedder: Embedding generation using sentence-transformers
"""
