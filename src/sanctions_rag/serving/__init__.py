"""
Serving — FastAPI application for the sanctions assistant.

Exposes health and streamed chat endpoints for a standalone container.
"""
