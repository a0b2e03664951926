"""Rewind a conversation to an earlier message, optionally reverting file edits.

A rewind is one interaction: the engine opens a record (state VIEWING), the
user picks a message and a RewindOutcome, and the interaction resolves once.

    VIEWING -> CANCELLED                      (no side effects)
    VIEWING -> RESOLVED | FAILED              (revert and/or truncate)

When both are requested the revert runs first; if it fails the record is left
untouched. Every path ends with the dialog dismissed. Failures are reported to
the UI as a single error item and never raised out of the engine.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .collaborators import ChatClient, ContextManager, FileReverter, UISurface
from .core import ConversationRecord, RewindOutcome, SessionKey
from .errors import NotFoundError, PartialFailure
from .history import HistoryItem, convert_session_to_history_formats
from .store import SessionStore

logger = logging.getLogger(__name__)

REVERTED_NOTICE = "File changes reverted."
NO_CONVERSATION = "No conversation found."


class RewindState(str, Enum):
    VIEWING = "viewing"
    CANCELLED = "cancelled"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class RewindResult:
    """What a resolved interaction did."""

    state: RewindState
    outcome: Optional[RewindOutcome] = None
    record: Optional[ConversationRecord] = None
    ui_history: list[HistoryItem] = field(default_factory=list)
    client_history: list[dict] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.state in (RewindState.RESOLVED, RewindState.CANCELLED)


class RewindEngine:
    """Coordinates the store, the live client, file revert and the UI for a rewind."""

    def __init__(
        self,
        store: SessionStore,
        client: ChatClient,
        ui: UISurface,
        reverter: FileReverter | None = None,
        context: ContextManager | None = None,
    ):
        self.store = store
        self.client = client
        self.ui = ui
        self.reverter = reverter
        self.context = context

    async def open(self, key: SessionKey) -> Optional["RewindInteraction"]:
        """Load the record for key and start an interaction in VIEWING state.

        Returns None, after reporting the problem to the UI, when the record
        is missing or unreadable.
        """
        interaction, _ = await self._open(key)
        return interaction

    async def _open(self, key: SessionKey) -> tuple[Optional["RewindInteraction"], str]:
        try:
            record = await self.store.load(key)
        except NotFoundError:
            self._report("info", NO_CONVERSATION)
            return None, NO_CONVERSATION
        except Exception as e:
            logger.error("Failed to open session %s for rewind: %s", key, e)
            message = str(e) or "Unknown error opening conversation"
            self._report("error", message)
            return None, message
        return RewindInteraction(self, key, record), ""

    async def rewind(
        self,
        key: SessionKey,
        index: int,
        outcome: RewindOutcome,
        pending_input: str = "",
    ) -> RewindResult:
        """Open key and resolve it in one step."""
        interaction, message = await self._open(key)
        if interaction is None:
            return RewindResult(state=RewindState.FAILED, outcome=outcome, message=message)
        return await interaction.choose(index, outcome, pending_input)

    def _report(self, kind: str, text: str) -> None:
        self.ui.add_item({"type": kind, "text": text}, time.time())


class RewindInteraction:
    """One rewind dialog over a loaded record. Resolves at most once."""

    def __init__(self, engine: RewindEngine, key: SessionKey, record: ConversationRecord):
        self.engine = engine
        self.key = key
        self.record = record
        self.state = RewindState.VIEWING

    @property
    def messages(self):
        return self.record.messages

    async def choose(self, index: int, outcome: RewindOutcome, pending_input: str = "") -> RewindResult:
        """Apply outcome for the message at index and close the dialog."""
        ui = self.engine.ui

        if self.state is not RewindState.VIEWING:
            message = f"Rewind already {self.state.value}."
            self.engine._report("error", message)
            return RewindResult(state=RewindState.FAILED, message=message)

        try:
            outcome = RewindOutcome(outcome)
            if outcome is RewindOutcome.CANCEL:
                ui.remove_component()
                self.state = RewindState.CANCELLED
                return RewindResult(state=self.state, outcome=outcome)

            if index < 0 or index >= len(self.record.messages):
                raise IndexError(
                    f"Message index {index} out of range for {len(self.record.messages)} messages"
                )

            if outcome is RewindOutcome.REVERT_ONLY:
                await self._revert(index)
                ui.remove_component()
                self.engine._report("info", REVERTED_NOTICE)
                self.state = RewindState.RESOLVED
                return RewindResult(
                    state=self.state, outcome=outcome, record=self.record, message=REVERTED_NOTICE,
                )

            if outcome is RewindOutcome.REWIND_AND_REVERT:
                try:
                    await self._revert(index)
                except Exception as e:
                    raise PartialFailure(f"File revert failed, conversation not rewound: {e}") from e

            return await self._rewind(index, outcome, pending_input)

        except Exception as e:
            logger.error("Rewind of %s failed: %s", self.key, e)
            self.state = RewindState.FAILED
            message = str(e) or "Unknown error during rewind"
            ui.remove_component()
            self.engine._report("error", message)
            return RewindResult(
                state=self.state,
                outcome=outcome if isinstance(outcome, RewindOutcome) else None,
                message=message,
            )

    async def _revert(self, index: int) -> None:
        reverter = self.engine.reverter
        if reverter is None:
            raise NotFoundError("File revert is not available")
        await reverter.revert_changes_since(self.record, index)
        logger.info("Reverted file changes after message %d of %s", index, self.key)

    async def _rewind(self, index: int, outcome: RewindOutcome, pending_input: str) -> RewindResult:
        engine = self.engine
        truncated = self.record.truncated(index)
        try:
            await engine.store.save(self.key, truncated)
        except OSError as e:
            if outcome is RewindOutcome.REWIND_AND_REVERT:
                raise PartialFailure(f"Files were reverted but the conversation could not be saved: {e}") from e
            raise
        self.record = truncated
        logger.info("Rewound %s to %d messages", self.key, len(truncated.messages))

        ui_history, client_history = convert_session_to_history_formats(truncated.messages)
        engine.client.set_history(client_history)
        if engine.context is not None:
            await engine.context.refresh()

        engine.ui.remove_component()
        engine.ui.load_history(ui_history, pending_input)

        self.state = RewindState.RESOLVED
        return RewindResult(
            state=self.state,
            outcome=outcome,
            record=truncated,
            ui_history=ui_history,
            client_history=client_history,
        )
