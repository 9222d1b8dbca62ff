# src/voiceflow/core/errors.py

"""
Failure taxonomy shared by the store, the gateways and the voice workflow.

Collaborator exceptions (httpx, openai, sqlite3) are wrapped into exactly one
of these with `raise ... from exc`. Nothing here is retried automatically:
the initiating surface decides whether to re-prompt the user.
"""

from __future__ import annotations


class VoiceFlowError(RuntimeError):
    """Base class for all user-surfaceable failures."""


class FetchFailure(VoiceFlowError):
    """The full task collection could not be retrieved."""


class MutationFailure(VoiceFlowError):
    """A create/update/delete was rejected or never reached persistence."""


class ParseFailure(VoiceFlowError):
    """A voice transcript could not be converted into a task candidate."""


class ValidationRefusal(VoiceFlowError):
    """Refused client-side before any network call (e.g. empty title)."""


class InvalidTransition(VoiceFlowError):
    """A voice workflow command was issued in a phase that does not accept it."""


def friendly_error_message(err: Exception) -> str:
    if isinstance(err, ValidationRefusal):
        return str(err) or "Please fill in the required fields."
    if isinstance(err, FetchFailure):
        return "Failed to load tasks. Please try again."
    if isinstance(err, MutationFailure):
        return str(err) or "Failed to save the task. Please try again."
    if isinstance(err, ParseFailure):
        return "Failed to parse voice input. Please try again."
    if isinstance(err, InvalidTransition):
        return str(err)
    return str(err).strip() or "Unexpected error."
