from __future__ import annotations


class EditorError(Exception):
    """Base class for errors raised by the editor core."""


class ValidationError(EditorError):
    """Operation preconditions unmet (no current image, empty prompt, bad ratio)."""


class ProviderError(EditorError):
    """An external AI call failed or returned something other than what was asked for."""


class GeometryError(EditorError):
    """Local rasterization failed (undecodable image, zero-area crop, bad surface size)."""


class StateContractViolation(EditorError):
    """Caller addressed an unknown session/intake or an impossible history position.

    This is a programming error and is not converted into a user-facing message.
    """


class StaleSessionError(StateContractViolation):
    """The session changed between the start of an operation and its commit."""
