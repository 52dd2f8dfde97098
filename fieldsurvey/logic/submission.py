"""Submission of a finished assessment to the remote backend.

The contract is a single call per explicit user action returning
``SubmissionResult(success, error)``. There is no retry and no rollback: the
local assessment stays editable whatever the outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Protocol

import httpx

from fieldsurvey.logic import events
from fieldsurvey.models.assessment import SubmissionResult

logger = logging.getLogger(__name__)


class Submitter(Protocol):
    def submit_assessment(self, assessment: Mapping[str, Any]) -> SubmissionResult: ...


class UnconfiguredSubmitter:
    """Used when no submission URL is configured."""

    def submit_assessment(self, assessment: Mapping[str, Any]) -> SubmissionResult:
        return SubmissionResult(success=False, error="submission endpoint not configured")


class HttpSubmitter:
    """POST the assessment snapshot as JSON to ``url`` exactly once."""

    def __init__(self, url: str, *, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    def submit_assessment(self, assessment: Mapping[str, Any]) -> SubmissionResult:
        payload: Dict[str, Any] = dict(assessment)
        try:
            if self._client is not None:
                resp = self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.error("submission_transport_error url=%s error=%s", self.url, e)
            return SubmissionResult(success=False, error=str(e) or e.__class__.__name__)
        if resp.is_success:
            return SubmissionResult(success=True)
        detail = (resp.text or "").strip()
        message = f"HTTP {resp.status_code}" + (f": {detail}" if detail else "")
        return SubmissionResult(success=False, error=message)


def submit(tree: Any, assessment_id: str, submitter: Submitter) -> SubmissionResult:
    """Submit one assessment and surface the result verbatim.

    A submitter that raises is reported as a failure with the exception text.
    On success the assessment is marked ``submitted``; it remains editable.
    """
    snapshot = tree.snapshot(assessment_id)
    try:
        result = submitter.submit_assessment(snapshot)
    except Exception as e:  # collaborator failures become the error contract
        logger.error("submission_failed assessment_id=%s", assessment_id, exc_info=True)
        result = SubmissionResult(success=False, error=str(e) or e.__class__.__name__)
    if result.success:
        tree.mark_submitted(assessment_id)
        events.publish(events.ASSESSMENT_SUBMITTED, {"assessment_id": assessment_id})
    else:
        events.publish(events.ASSESSMENT_SUBMIT_FAILED, {"assessment_id": assessment_id, "error": result.error})
    return result


__all__ = ["Submitter", "HttpSubmitter", "UnconfiguredSubmitter", "submit"]
