"""
Deal scoring and recommendation engine.

Responsibilities:
- Score each coupon against user preferences using fixed heuristics.
- Attach weighted, human-readable reasons to every candidate.
- Filter, rank and truncate candidates into recommendations.
"""
