"""Tutoring-center progress ledger and redemption code service."""
