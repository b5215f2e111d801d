"""
TenderScore - Relevance scoring for public tender notices.

Scores tenders against per-organization keyword/CPV profiles and keeps
the stored evaluations current through a durable job queue.
"""

__version__ = "0.1.0"
__app_name__ = "tenderscore"
