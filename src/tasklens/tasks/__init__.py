"""
Task subsystem.

Components:
- task_models.py: data structures (TaskRecord, TaskAddress, Priority, EditResult)
- task_parser.py: checkbox line grammar (parse + line rewrites)
- task_writer.py: write-back of toggles and edits to the editor/store
- task_api.py: small high-level helpers used by the rest of the app
"""
