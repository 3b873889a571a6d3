# brew_cashier/errors.py
"""
Error taxonomy for the ordering pipeline.

- Transport failures against an external service (completion engine, speech
  synthesis, playback, order store).
- Invalid state transitions, rejected at the API boundary.
- Missing runtime capabilities (no speech recognition available).

A malformed receipt has no error type: extract() reports it as "no receipt yet".
"""

from __future__ import annotations


class OrderingError(Exception):
    """Base class for every error raised by this package."""


# -----------------------------------------------------------------------------
# Transport
# -----------------------------------------------------------------------------
class CompletionError(OrderingError):
    """The completion engine failed, timed out or returned no text."""


class SynthesisError(OrderingError):
    """Speech synthesis failed or is not configured."""


class PlaybackError(OrderingError):
    """The audio player could not play a synthesized clip."""


class OrderStoreError(OrderingError):
    """The order store could not be read."""


# -----------------------------------------------------------------------------
# Invalid state
# -----------------------------------------------------------------------------
class InvalidTransitionError(OrderingError):
    """A state change was requested that is not legal from the current state."""


class SessionFinalizedError(InvalidTransitionError):
    """The conversation is over; no further input is accepted."""


class TurnInProgressError(InvalidTransitionError):
    """A turn is already waiting on the completion engine."""


class EmptyInputError(OrderingError):
    """The user submitted blank text."""


class UnknownOrderError(OrderingError, KeyError):
    """No order with the given id is known locally."""


# -----------------------------------------------------------------------------
# Capability
# -----------------------------------------------------------------------------
class RecognitionError(OrderingError):
    """A capture pass ended without a usable transcript."""


class UnsupportedCapabilityError(RecognitionError):
    """Speech recognition is not available in this runtime."""
