"""Catalog app package.

Read models for the resources the reservation engine allocates:
establishments and their staff memberships, services, availability
slots, hotel units and the add-on catalog. Managing these records is
done elsewhere; the engine only reads them and mutates slot capacity
and unit status through the resource ledger.
"""
