"""
transit-monitor: import, storage and query pipeline for railway transit
anomaly monitoring.
"""

__version__ = "0.1.0"
