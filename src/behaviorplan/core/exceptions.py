"""
Domain Exceptions

Errors raised by the plan engine. Validation errors live in
behaviorplan.core.validation alongside the validators that raise them.
"""

from __future__ import annotations


class NotFoundError(Exception):
    """Raised when a plan, student, section or revision id is unknown."""

    def __init__(self, entity: str, identifier: object):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found with ID: {identifier}")


class OracleError(Exception):
    """Raised when a call to the generation oracle fails."""

    pass


class GenerationError(OracleError):
    """Raised when the oracle output is missing, unparseable or off-schema."""

    pass


class CoherenceCheckFailure(Exception):
    """Internal signal that a coherence check could not complete.

    Never propagated past the coherence checker.
    """

    pass
