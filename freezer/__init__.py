"""
Freezer Inventory - Source Package

A shared household freezer inventory that stays consistent across
devices and household members, and keeps working offline.

DESIGN PRINCIPLES:
1. The local cache is the source of truth for the running device
2. One in-process owner of the document applies every mutation
3. Invalid or forbidden changes never touch the document
4. Remote sync is best-effort and never blocks the user
5. Storage and sharing backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Freezer Inventory Team"
