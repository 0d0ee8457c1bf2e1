"""
GeoHunt Engine Test Suite
=========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with fakes and mocks (no I/O)
- tests/integration/   : Integration tests against a temp-file SQLite database

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test game rules and state machines
- Integration tests: Exercise services through DatabaseService end to end
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
