"""
Pydantic schemas for reassignment payloads and results.
"""
