"""Core persistence, auth and error handling for ClinicOS."""
