"""Integration test suite for end-to-end flows.

Covers the index lifecycle against OpenSearch and event delivery through
Redis. Tests skip when the backing service is not reachable.
"""
