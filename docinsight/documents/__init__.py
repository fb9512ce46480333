"""Document records, feedback and usage metrics."""
