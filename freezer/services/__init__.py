"""
Services Package

Storage, sharing and reminder services used by the inventory store.
"""
