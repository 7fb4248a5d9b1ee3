"""Clinic lifecycle and capacity tracking."""
