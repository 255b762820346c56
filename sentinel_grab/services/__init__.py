"""Services used by the job pipeline."""
