"""Services, treatment sessions and appointment booking."""
