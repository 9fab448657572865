# interview_runtime/core/state.py

from enum import Enum


class SessionStatus(str, Enum):
    DRAFT = "draft"
    RUNNING = "running"
    FINISHED = "finished"
    CANCELLED = "cancelled"

