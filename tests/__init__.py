"""
Tests package for CodeDrop.

This package contains test suites organized by type:
- unit/: Fast tests against in-memory fakes and temporary directories
- contracts/: Contract tests run against every repository implementation
- integration/: Tests against a real Redis server
- property/: Property-based tests using Hypothesis
"""
