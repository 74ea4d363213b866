"""
ecosystem/errors.py - Exception Hierarchy

Nothing in the stepper raises these for ordinary simulation outcomes; they
mark invalid input at the edges (registration, configuration, storage).
"""


class EcosystemError(Exception):
    """Base class for all ecosystem errors."""


class RegistrationError(EcosystemError, ValueError):
    """Invalid custom entity type definition."""


class ConfigError(EcosystemError, ValueError):
    """Configuration failed strict validation."""


class StorageError(EcosystemError):
    """A persistence adapter could not complete an operation."""
