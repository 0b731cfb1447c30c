"""
Task subsystem.

Components:
- task_models.py: data structures (TaskRecord, TaskStatus, TaskRef)
- output_schema.py: recursive structured-output schema + wire codec
- task_store.py: SQLite-backed storage + patch helpers
- poll_registry.py: one-poller-per-task guard
- task_poller.py: per-task status polling loop
- task_runner.py: run flow, batch scan, poller lifecycle
- task_api.py: small high-level helpers used by the console
"""
