"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context: structured logging,
the background task runner, and HTTP middleware.

DO NOT add ticket, SLA, routing or workflow business logic here.
"""
