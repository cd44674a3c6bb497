"""
salonslots - bookable appointment slots for salon stylists.
"""

__version__ = "0.1.0"
