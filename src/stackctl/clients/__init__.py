"""Adapters for the external tools and services the pipeline drives."""
