"""Tests for the search index lifecycle library.

Unit tests run against the recording doubles in ``tests.stubs``; the
``integration`` package exercises a live OpenSearch and Redis and skips when
they are unavailable.
"""
