"""Review Engine - review lifecycle and visibility authorization service.

This package decides who may create, read, update, or delete challenge
reviews, resolves the phase and resource a review attaches to, aggregates
scorecard scores, masks results a requester may not yet see, records
field-level audit history, and emits review completion events.
"""

__version__ = "0.1.0"
