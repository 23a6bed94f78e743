"""
amo-submit Submission Subsystem

This package implements the upload -> validation -> submit -> approval -> download
pipeline against the add-on review service.

Core Components:
- interfaces: Data model shared by the pipeline stages
- auth: Per-request JWT minting
- transport: Authenticated aiohttp transport and response interpretation
- clock: Injectable time source for the pollers
- locations: Where the reviewed file lives in a detail record
- polling: Validation and approval pollers
- artifacts: Saving the signed package
- orchestrator: The submission workflows
"""

from .artifacts import ArtifactSaver
from .clock import AsyncioClock, Clock
from .interfaces import (
    Channel,
    Credentials,
    FileRecord,
    UploadRecord,
    WorkflowContext,
    WorkflowKind,
)
from .locations import FileLocation
from .orchestrator import SubmissionClient
from .polling import ApprovalPoller, PollState, StatusPoller, ValidationPoller
from .transport import AuthenticatedTransport

__all__ = [
    # Interfaces
    "Channel",
    "Credentials",
    "FileRecord",
    "UploadRecord",
    "WorkflowContext",
    "WorkflowKind",
    "FileLocation",
    # Components
    "AuthenticatedTransport",
    "Clock",
    "AsyncioClock",
    "PollState",
    "StatusPoller",
    "ValidationPoller",
    "ApprovalPoller",
    "ArtifactSaver",
    # Orchestration
    "SubmissionClient",
]
