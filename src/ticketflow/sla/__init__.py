"""
SLA Module
==========

Bounded Context for Service Level Agreement deadlines.

Responsibilities:
- Look up tenant SLA policies by priority
- Fall back to the built-in default table (optionally overridden from YAML)
- Compute first-response and resolution deadlines for new tickets
"""
