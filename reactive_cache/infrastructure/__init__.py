"""
Infrastructure Module

Redis-backed implementations of the reactive cache's collaborators.

- **cache/**: Redis client and value store
- **lease/**: exclusive lease manager
- **message_queue/**: Redis Streams job queue with delayed delivery
- **monitoring/**: Prometheus metrics
"""
