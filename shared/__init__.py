"""
Shared Kernel

Value objects, domain events, the unit of work and the message bus
used by every app of the booking platform.
"""
