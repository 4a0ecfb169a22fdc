"""
Tickets Module
==============

Bounded Context for the ticket lifecycle.

Responsibilities:
- Create tickets from authenticated requests, inbound email and the public form
- Enforce the status state machine on single and bulk updates
- Keep the audit trail and assignment notifications in the same transaction
- Trigger workflows and lifecycle emails after commit
"""
