"""CLI command modules."""

from . import db, evaluate, jobs, profiles, tenders, worker

__all__ = [
    "db",
    "evaluate",
    "jobs",
    "profiles",
    "tenders",
    "worker",
]
