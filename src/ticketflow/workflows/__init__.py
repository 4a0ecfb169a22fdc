"""
Workflows Module
================

Bounded Context for tenant-defined automation.

Responsibilities:
- Load active workflows for a trigger event (ticket_created, ticket_updated)
- Evaluate AND-combined conditions against a ticket snapshot
- Execute actions (update_field, send_notification, send_email) best-effort
"""
