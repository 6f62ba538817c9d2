"""
Pydantic models for complaint records, derived views and table queries.

DESIGN PRINCIPLE:
- Models reflect data structure, not business logic
- Derived views are immutable snapshots
"""
