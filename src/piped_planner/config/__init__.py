"""Deployment configuration models."""
