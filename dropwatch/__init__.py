"""
Dropwatch - live delivery order tracker.

Scrapes public order-status pages and keeps a chat message up to date
until the order is delivered.
"""

__version__ = "0.1.0"
