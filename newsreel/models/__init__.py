"""Pydantic models for jobs, briefs, scripts and media."""
