"""
RegCheck Reporting
===================

Deterministic, rule-based report artifacts.

Components:
    - gaps.py:       Gap severity classification and findings
    - questions.py:  Templated auditor questions
    - decision.py:   Approval recommendation and narrative
"""
