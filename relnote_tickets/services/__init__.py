"""
Tracker access and the ticket pipeline built on top of it.
"""
