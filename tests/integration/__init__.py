"""
Integration Tests Package

These tests drive SlotService against real collaborators:
1. SQLAlchemy repositories on an in-memory SQLite database
2. Many threads competing for the slots of one parking area
"""
