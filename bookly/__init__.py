"""
Bookly reassignment backend.

Reassignment workflow for university resource bookings: requests raised
when a booked room, lab or piece of equipment becomes unavailable, their
state machine, persistence and orchestration.
"""

__version__ = "1.0.0"
