"""
Staff Mileage Tracker - GPS trip, visit and mileage-cost backend for home health agencies.
"""

__version__ = "1.0.0"
