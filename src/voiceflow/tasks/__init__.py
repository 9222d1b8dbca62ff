"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskPayload, TaskPriority, TaskStatus)
- task_store.py: canonical in-memory collection with refresh-after-mutation
- filters.py: filter criteria + pure filter engine + derived view
- gateway.py: REST persistence gateway (httpx)
- task_api.py: small high-level helpers used by the rest of the app
"""
