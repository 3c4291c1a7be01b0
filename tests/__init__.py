"""Test suite for bundlefix.

Test Structure:
- unit/: Unit tests for individual components (bundle, metadata, package, ...)
- integration/: End-to-end runs of the engine and CLI on synthetic packages
- conftest.py: Shared fixtures that build ``.ipa`` / ``.xcarchive`` inputs
"""
