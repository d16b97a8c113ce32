"""Visit workflows driven by the UI"""

from fieldvisit.workflows.checkin import CheckInSession, CheckInStep, CheckInWorkflow
from fieldvisit.workflows.checkout import CheckOutWorkflow
from fieldvisit.workflows.prompts import Prompt, PromptAction

__all__ = [
    "CheckInSession",
    "CheckInStep",
    "CheckInWorkflow",
    "CheckOutWorkflow",
    "Prompt",
    "PromptAction",
]
