"""HTTP service for segmentation and recording sessions.

WHY: Front ends drive recording sessions remotely; the recording state
machine needs one writer per session, which the store enforces.

HOW: sessions.py holds the locked in-memory store, models.py the
Pydantic schemas, app.py the FastAPI routes.
"""
