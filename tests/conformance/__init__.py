"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the taxtoken system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Supply conservation and the exact tax split
2. atomicity.py - All-or-nothing operation semantics
3. determinism.py - Reproducible addresses, registries and event logs

These tests use hypothesis for property-based testing.
"""
