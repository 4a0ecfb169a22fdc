"""
Routing Module
==============

Bounded Context for auto-assignment of incoming tickets.

Responsibilities:
- Match tenant keyword rules against ticket text (first match wins)
- Fall back to a default team picked by built-in keyword buckets
"""
