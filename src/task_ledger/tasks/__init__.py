"""
Task subsystem.

Components:
- task_models.py: data structure (Task) and its wire shape
- task_store.py: in-memory keyed store + id counter, guarded by one lock
- task_snapshot.py: whole-store JSON snapshot/restore across restarts
"""
