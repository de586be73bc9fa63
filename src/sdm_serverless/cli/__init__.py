"""Command-line interface for sdm-serverless."""
