"""
RegCheck Embeddings
====================

Embedding providers used to attach vectors to clauses and paragraphs
that arrive without one.
"""
