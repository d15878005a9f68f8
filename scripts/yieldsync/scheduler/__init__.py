"""
Recurring job scheduling for pool data synchronization.
"""

from yieldsync.scheduler.setup import BOOTSTRAP_JOB_ID, JobScheduler, create_job_scheduler

__all__ = ["BOOTSTRAP_JOB_ID", "JobScheduler", "create_job_scheduler"]
