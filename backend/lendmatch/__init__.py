"""Loan matching and capital allocation service."""
