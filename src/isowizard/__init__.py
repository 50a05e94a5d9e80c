"""
IsoWizard - Disk partition planning for ISO storage drives.

Reads a machine's disks and partition tables into a structured model and
plans partition changes in memory before anything touches a real device.
"""

__version__ = "1.0.0"
__author__ = "IsoWizard Team"

from isowizard.core.config import IsoWizardConfig
from isowizard.core.session import Session

__all__ = ["IsoWizardConfig", "Session", "__version__"]
