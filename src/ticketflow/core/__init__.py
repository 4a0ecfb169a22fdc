"""
Core Module
============

Shared core abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system: the exception taxonomy and the data store
contract every bounded context writes through.
"""

from ticketflow.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    InvalidTransitionException,
)
from ticketflow.core.store import IDataStore, StoreFactory

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "InvalidTransitionException",
    "IDataStore",
    "StoreFactory",
]
