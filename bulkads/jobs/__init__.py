"""
Bulk creation jobs module.

This module contains the job models, the job store, the progress publishers and
the engine that processes bulk creation requests.
"""

from .models import BulkOptions, BulkRequest, JobRecord, JobStatus, ProgressEvent
from .orchestrator import BulkCreationOrchestrator
from .services import JobService
from .store import JobStore

__all__ = [
    'BulkCreationOrchestrator',
    'BulkOptions',
    'BulkRequest',
    'JobRecord',
    'JobService',
    'JobStatus',
    'JobStore',
    'ProgressEvent',
]
