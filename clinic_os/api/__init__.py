"""ClinicOS REST API."""
