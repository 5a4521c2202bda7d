"""Pydantic Schemas — validation of inbound wire data at the system boundary.

Design Decisions:
    - Separate from models: schemas are wire contracts, models are persistence
"""
