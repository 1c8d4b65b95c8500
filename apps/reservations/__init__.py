"""Reservations app package.

Allocation and lifecycle engine for slot seats and hotel units. Public
entry points live in :mod:`apps.reservations.services`.
"""
