"""
Contacts module - clients and suppliers

Individuals cannot carry a SIREN number; contacts referenced by documents
cannot be deleted.
"""
