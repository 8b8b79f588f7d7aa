"""Audio conversion and timing helpers."""
