"""
Core Interfaces Module

Abstract interfaces for the external collaborators of the reactive cache.

Components:
-----------
- **value_store.py**: ValueBackend and LeaseManager protocols
- **message_queue.py**: MessageQueue interface and QueueMessage

Usage:
------
```python
from reactive_cache.core.interfaces import LeaseManager, MessageQueue, ValueBackend
```
"""

from .message_queue import MessageQueue, QueueMessage
from .value_store import LeaseManager, ValueBackend

__all__ = [
    "LeaseManager",
    "MessageQueue",
    "QueueMessage",
    "ValueBackend",
]
