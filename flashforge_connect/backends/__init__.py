"""
Printer backends.

A single dual-protocol strategy serves every family. What differs between
families lives in a ModelProfile: the feature template and optional hooks
for family-specific telemetry and job data.
"""

from .dual import DualProtocolBackend
from .models import AD5X, ADVENTURER_5M, ADVENTURER_5M_PRO, GENERIC_LEGACY, profile_for_model
from .profile import ModelProfile

__all__ = [
    "AD5X",
    "ADVENTURER_5M",
    "ADVENTURER_5M_PRO",
    "GENERIC_LEGACY",
    "DualProtocolBackend",
    "ModelProfile",
    "profile_for_model",
]
