"""Multi-stage request pipelines."""
