"""
Test suite for the parking slot management core

unit/         - domain rules, service use cases, commands, infrastructure
integration/  - SQLAlchemy storage and concurrent allocation
"""
