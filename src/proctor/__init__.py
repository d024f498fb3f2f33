"""Proctored assessment session engine."""
