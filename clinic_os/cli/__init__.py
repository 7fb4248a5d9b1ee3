"""Command-line interface for ClinicOS."""
