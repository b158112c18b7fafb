"""
therapyslots - availability resolution for practitioner schedules.
"""

__version__ = "0.1.0"
