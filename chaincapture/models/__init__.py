"""
Pydantic models for captures, IP Assets and API payloads.
"""
