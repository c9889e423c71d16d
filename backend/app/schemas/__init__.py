"""Pydantic request/response schemas for API endpoints."""
