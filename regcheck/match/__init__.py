"""
RegCheck Matching
==================

Similarity retrieval and band triage.

Components:
    - similarity.py:  Parallel cosine similarity scan (clause x paragraph)
    - classifier.py:  HIGH / LOW / AMBIGUOUS triage and judge dispatch
"""
