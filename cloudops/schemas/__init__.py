"""Pydantic schemas module."""
