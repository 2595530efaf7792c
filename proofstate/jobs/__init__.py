"""
Job discovery: turns proof state into per-role work queues.
"""

from .finder import (
    JobResult,
    find_jobs,
    find_jobs_in_state,
    find_prover_jobs,
    find_verifier_jobs,
    is_prover_job,
    is_verifier_job,
)

__all__ = [
    "JobResult",
    "find_jobs",
    "find_jobs_in_state",
    "find_prover_jobs",
    "find_verifier_jobs",
    "is_prover_job",
    "is_verifier_job",
]
