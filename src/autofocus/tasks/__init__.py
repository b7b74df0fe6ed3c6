"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, state variants, NotebookSettings)
- task_store.py: in-memory ordered store
- page_policy.py: pure page capacity / closure / placement rules
- suggestions.py: recall suggestions and the "dismissed before" warning
- snapshot.py: export / import document codec
- history.py: monthly log of completed and dismissed tasks
- errors.py: recoverable error kinds
"""
