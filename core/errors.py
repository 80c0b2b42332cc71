"""Typed errors raised across the pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    PRECONDITION_MISSING = "precondition_missing"   # archive lacks a required file
    MODEL_TRANSPORT = "model_transport"             # network / API failure talking to the model
    MODEL_SCHEMA = "model_schema"                   # model reply did not match the output schema
    INVALID_FIX_PATH = "invalid_fix_path"           # recorded only, never raised
    PROVIDER_REQUEST = "provider_request"           # GitHub / Render API failure


class DeployerError(Exception):
    """Raised when a run cannot continue.

    Carries the error kind plus whatever context the failing stage had:
    the loop iteration (0-based), the raw payload the model returned, or the
    HTTP status from a provider API.
    """

    def __init__(self, message, kind: ErrorKind, iteration: int | None = None,
                 payload=None, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.iteration = iteration
        self.payload = payload
        self.status = status

    def to_dict(self):
        data = {"error": self.message, "kind": self.kind.value}
        if self.iteration is not None:
            data["iteration"] = self.iteration
        if self.status is not None:
            data["status"] = self.status
        return data
