"""
Services layer - the complaint lifecycle & spatial aggregation engine.

DESIGN PRINCIPLE:
- Services are pure functions of a complaint snapshot and an explicit `now`
- No storage, HTTP, rendering or notification delivery lives here
- Escalation only REPORTS transitions; delivering them is the host's job
"""
