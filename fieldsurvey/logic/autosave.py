"""Debounced bridge from a transient edit buffer to the assessment tree.

One ``AutosaveBridge`` per editing session (assessment, area, section). The
state machine is ``IDLE -> PENDING -> COMMITTING -> IDLE``:

- an edit moves to PENDING and (re)starts a trailing timer;
- timer expiry diffs the buffer against the store's current values (or, with
  no reader, the last committed baseline), drops undefined fields and hands
  the minimal patch to the commit function;
- ``teardown()`` cancels the timer and drops whatever was pending. Edits
  younger than the delay are lost on teardown; inputs that must persist on
  exit go through ``commit_now()`` instead.

``reset()`` is for writers other than the user (loading a snapshot, switching
assessments). It replaces buffer and baseline without scheduling anything, so
the bridge never echoes an external change back as a user edit.

Timers come from a scheduler with ``call_later(delay, callback)`` returning a
handle with ``cancel()``; by default the running asyncio loop.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Mapping, Protocol, Tuple

from fieldsurvey.logic.patch_merge import diff, merge, merged, prune_undefined
from fieldsurvey.logic.section_node import COLLECTION_KEYS

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

CommitFn = Callable[[Dict[str, Any]], Any]
ReadFn = Callable[[], Mapping[str, Any]]
SessionKey = Tuple[str, ...]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules on the running event loop at call time."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class BridgeState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTING = "committing"


class AutosaveBridge:
    def __init__(
        self,
        session_key: Hashable,
        commit: CommitFn,
        *,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        scheduler: Scheduler | None = None,
        initial: Mapping[str, Any] | None = None,
        read: ReadFn | None = None,
    ) -> None:
        self.session_key = session_key
        self._commit = commit
        self._read = read
        self._delay = delay
        self._scheduler = scheduler or AsyncioScheduler()
        self._baseline: Dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._buffer: Dict[str, Any] = copy.deepcopy(self._baseline)
        self._handle: TimerHandle | None = None
        self._state = BridgeState.IDLE
        self._closed = False
        self.commit_count = 0

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def buffer(self) -> Dict[str, Any]:
        return copy.deepcopy(self._buffer)

    @property
    def baseline(self) -> Dict[str, Any]:
        return copy.deepcopy(self._baseline)

    def _current(self) -> Dict[str, Any]:
        # Other writers may have changed the store since the last commit
        if self._read is None:
            return self._baseline
        return copy.deepcopy(dict(self._read()))

    def pending_patch(self) -> Dict[str, Any]:
        return diff(self._current(), self._buffer)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def edit(self, patch: Mapping[str, Any]) -> None:
        """Apply a user edit to the buffer and restart the debounce timer."""
        if self._closed:
            logger.warning("autosave_edit_after_teardown session=%s", self.session_key)
            return
        if self._state is BridgeState.IDLE and self._read is not None:
            # A new burst starts from the store; uncommitted fields carry over
            self._buffer = merged(self._current(), diff(self._baseline, self._buffer))
        merge(self._buffer, patch)
        self._schedule()

    def edit_buffer(self, values: Mapping[str, Any]) -> None:
        """Replace the whole buffer with the form's current values.

        While idle, values that match the store (or, without a reader, the
        baseline) are an echo and do not schedule a commit.
        """
        if self._closed:
            logger.warning("autosave_edit_after_teardown session=%s", self.session_key)
            return
        self._buffer = copy.deepcopy(dict(values))
        if self._state is BridgeState.IDLE and not diff(self._current(), self._buffer):
            logger.debug("autosave_echo_suppressed session=%s", self.session_key)
            return
        self._schedule()

    def reset(self, values: Mapping[str, Any]) -> None:
        """External reset: new buffer and baseline, nothing scheduled."""
        self._cancel()
        self._baseline = copy.deepcopy(dict(values))
        self._buffer = copy.deepcopy(self._baseline)
        if self._state is not BridgeState.COMMITTING:
            self._state = BridgeState.IDLE

    def commit_now(self, patch: Mapping[str, Any]) -> Dict[str, Any]:
        """Commit ``patch`` immediately, outside the debounce path.

        The debounce timer, if running, keeps running for the other fields.
        """
        if self._closed:
            logger.warning("autosave_commit_after_teardown session=%s", self.session_key)
            return {}
        outgoing = prune_undefined(patch)
        if not outgoing:
            return {}
        merge(self._baseline, outgoing)
        merge(self._buffer, outgoing)
        self._commit(outgoing)
        self.commit_count += 1
        logger.info("autosave_commit_immediate session=%s keys=%s", self.session_key, sorted(outgoing))
        return outgoing

    def flush(self) -> Dict[str, Any]:
        """Commit the pending patch now (explicit save); returns what was sent."""
        if self._handle is None:
            return {}
        self._cancel()
        return self._fire()

    def teardown(self) -> Dict[str, Any]:
        """Cancel the timer unconditionally and close the session.

        Returns the patch that was dropped (empty when nothing was pending).
        """
        dropped = self.pending_patch() if self._state is BridgeState.PENDING else {}
        self._cancel()
        self._state = BridgeState.IDLE
        self._closed = True
        if dropped:
            logger.info("autosave_pending_dropped session=%s keys=%s", self.session_key, sorted(dropped))
        return dropped

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._cancel()
        self._state = BridgeState.PENDING
        self._handle = self._scheduler.call_later(self._delay, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        if self._closed:
            return
        self._fire()

    def _fire(self) -> Dict[str, Any]:
        self._state = BridgeState.COMMITTING
        try:
            current = self._current()
            patch = diff(current, self._buffer)
            if not patch:
                return {}
            previous = self._baseline
            self._baseline = merged(current, patch)
            try:
                self._commit(patch)
            except Exception:
                # Keep the old baseline so the next edit re-sends these fields
                self._baseline = previous
                logger.error("autosave_commit_failed session=%s", self.session_key, exc_info=True)
                return {}
            self.commit_count += 1
            logger.info("autosave_commit session=%s keys=%s", self.session_key, sorted(patch))
            return patch
        finally:
            if self._handle is None:
                self._state = BridgeState.IDLE


def editable_view(node: Mapping[str, Any]) -> Dict[str, Any]:
    """Section node without its collections, which never travel in a section patch."""
    out = {k: copy.deepcopy(v) for k, v in node.items() if k not in COLLECTION_KEYS and k != "subsections"}
    subs = node.get("subsections")
    if isinstance(subs, Mapping):
        out["subsections"] = {name: editable_view(sub) for name, sub in subs.items() if isinstance(sub, Mapping)}
    return out


class AutosaveSessions:
    """Registry of bridges keyed by ``(assessment_id, area, section, ...)``.

    Attach it to an ``AssessmentTree`` to make active-assessment switches tear
    down every bridge that does not belong to the new active assessment before
    the pointer moves.
    """

    def __init__(self, *, delay: float = DEFAULT_DEBOUNCE_SECONDS, scheduler: Scheduler | None = None) -> None:
        self._delay = delay
        self._scheduler = scheduler
        self._bridges: Dict[SessionKey, AutosaveBridge] = {}

    def attach(self, tree: Any) -> "AutosaveSessions":
        tree.add_switch_listener(self._on_switch)
        return self

    def _on_switch(self, previous: str | None, new: str | None) -> None:
        stale = {k[0] for k in self._bridges if k and k[0] != new}
        for assessment_id in sorted(stale):
            self.teardown_assessment(assessment_id)

    def open(
        self,
        key: SessionKey,
        commit: CommitFn,
        initial: Mapping[str, Any] | None = None,
        read: ReadFn | None = None,
    ) -> AutosaveBridge:
        """Open a bridge for ``key``; an existing bridge for it is torn down."""
        existing = self._bridges.pop(key, None)
        if existing is not None:
            existing.teardown()
        bridge = AutosaveBridge(
            key, commit, delay=self._delay, scheduler=self._scheduler, initial=initial, read=read
        )
        self._bridges[key] = bridge
        return bridge

    def open_section(self, tree: Any, assessment_id: str, area: str, section: str) -> AutosaveBridge:
        """Open a bridge that reads from and commits to one tree section."""

        def _read() -> Dict[str, Any]:
            return editable_view(tree.section(assessment_id, area, section))

        def _commit(patch: Dict[str, Any]) -> None:
            tree.update_section(assessment_id, area, section, patch)

        return self.open((assessment_id, area, section), _commit, initial=_read(), read=_read)

    def get(self, key: SessionKey) -> AutosaveBridge | None:
        return self._bridges.get(key)

    def close(self, key: SessionKey) -> Dict[str, Any]:
        bridge = self._bridges.pop(key, None)
        return bridge.teardown() if bridge is not None else {}

    def teardown_assessment(self, assessment_id: str) -> int:
        keys = [k for k in self._bridges if k and k[0] == assessment_id]
        for key in keys:
            self._bridges.pop(key).teardown()
        if keys:
            logger.info("autosave_sessions_torn_down assessment_id=%s count=%s", assessment_id, len(keys))
        return len(keys)

    def teardown_all(self) -> int:
        count = len(self._bridges)
        for bridge in self._bridges.values():
            bridge.teardown()
        self._bridges.clear()
        return count

    def __len__(self) -> int:
        return len(self._bridges)


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "AutosaveBridge",
    "AutosaveSessions",
    "AsyncioScheduler",
    "BridgeState",
    "Scheduler",
    "TimerHandle",
    "editable_view",
]
