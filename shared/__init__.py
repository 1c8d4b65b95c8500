"""
Shared Kernel

Base domain classes, value objects, typed errors, the unit of work and
the message bus used by the reservation engine.
"""
