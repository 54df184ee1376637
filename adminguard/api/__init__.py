"""ADMINGUARD API package."""
