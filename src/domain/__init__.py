"""
Domain layer for enrollment notification business logic.

This layer contains:
- Data models (normalized lead record, trigger event)
- Business logic (enrollment notifier decision sequence)
- Result types (explicit delivery and outcome handling)
"""
