"""Application layer: use cases, DTOs and commands"""
