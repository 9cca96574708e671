"""Unit tests, in-memory storage and mocked clients only"""
