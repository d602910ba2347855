"""
Tests package - Test suite for the pod monitor operator.

Contains:
- unit/: Unit tests for individual components
- fixtures/: Certificate payloads and builders
"""
