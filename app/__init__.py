"""Attendance Sync Platform.

Pulls employee and attendance data from a BioTime time-and-attendance
server into an idempotent staging store, and keeps the sync jobs alive
under an in-process service supervisor.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
