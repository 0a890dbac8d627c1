"""
Chirper Utilities
=================

Exception hierarchy and logging configuration shared by every layer.
"""
