"""Notebook service: the save/list/delete flow used by the editor.

Owns the rules the store itself does not enforce: id generation, created
and updated stamping, trimming, and discarding blank drafts.
"""

import logging
import time
from typing import Callable, List, Optional
from uuid import uuid4

from .sources import CaptureSource, DictationSource, LocationSource, locate_within
from ..models.note import Note, NoteDraft, sort_by_updated
from ..store.base import NoteStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_note_id() -> str:
    return str(uuid4())


class Notebook:
    """Editor-facing operations over a note store."""

    def __init__(
        self,
        store: NoteStore,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_note_id,
    ):
        """Initialize notebook.

        Args:
            store: Note store to persist into
            clock: Returns the current time in epoch ms
            id_factory: Generates ids for new notes
        """
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    def save(self, draft: NoteDraft) -> Optional[Note]:
        """Persist a draft.

        A blank draft is discarded. Saving an existing note keeps its id and
        created time; updated always moves forward, even if the clock has
        not.

        Args:
            draft: Editor state to save

        Returns:
            The stored note, or None if the draft was blank

        Raises:
            WriteFailed: The store is full or unwritable; the draft is untouched
        """
        if draft.is_blank:
            logger.debug("Discarding blank draft %s", draft.id)
            return None

        existing = self.store.get_by_id(draft.id) if draft.id else None
        now = self.clock()
        if existing:
            created = existing.created
            updated = max(now, existing.updated + 1)
        else:
            created = updated = now

        note = Note(
            id=draft.id or self.id_factory(),
            title=draft.title.strip(),
            body=draft.body.strip(),
            image=draft.image,
            geo=draft.geo,
            created=created,
            updated=updated,
        )
        self.store.put(note)
        return note

    def list_notes(self) -> List[Note]:
        """Get all notes, most recently saved first."""
        return sort_by_updated(self.store.get_all())

    def get(self, note_id: str) -> Optional[Note]:
        return self.store.get_by_id(note_id)

    def open_draft(self, note_id: Optional[str] = None) -> Optional[NoteDraft]:
        """Start editing a note, or a new one when ``note_id`` is None.

        Returns:
            Draft for the note, or None if the id is unknown
        """
        if note_id is None:
            return NoteDraft()
        note = self.store.get_by_id(note_id)
        return NoteDraft.from_note(note) if note else None

    def delete(self, note_id: str) -> None:
        self.store.delete_by_id(note_id)

    def reset(self) -> None:
        """Delete every note (full reset)."""
        self.store.clear()
        logger.info("Notebook reset")

    # === Collaborators ===

    def dictate(self, draft: NoteDraft, source: DictationSource) -> NoteDraft:
        """Append dictated segments to the draft body, space separated."""
        body = draft.body
        for segment in source.segments():
            segment = segment.strip()
            if not segment:
                continue
            body = f"{body} {segment}" if body else segment
        return draft.model_copy(update={"body": body})

    def attach_image(self, draft: NoteDraft, source: CaptureSource) -> NoteDraft:
        image = source.capture()
        return draft.model_copy(update={"image": image.to_data_url()})

    def remove_image(self, draft: NoteDraft) -> NoteDraft:
        return draft.model_copy(update={"image": None})

    def attach_location(
        self, draft: NoteDraft, source: LocationSource, timeout: float = 10.0
    ) -> NoteDraft:
        """Attach the current position; an unknown position leaves geo unset."""
        geo = locate_within(source, timeout)
        if geo is None:
            logger.info("Location unavailable, saving without coordinates")
            return draft
        return draft.model_copy(update={"geo": geo})
