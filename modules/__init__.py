"""Folio feature modules."""
