"""Event processor for validating draft events."""
import logging
from typing import List, Optional

from processor.models import DraftEvent, Event

logger = logging.getLogger(__name__)


class EventProcessor:
    """Turns draft events into validated Event records."""

    MAX_NAME_LENGTH = 255

    def process_drafts(self, drafts: List[DraftEvent]) -> List[Event]:
        """
        Validate drafts and build Event objects.

        Drafts missing a required field are dropped with a warning rather
        than raised, so one malformed card never hides the rest of a page.

        Args:
            drafts: Draft events produced by a source adapter

        Returns:
            List of validated Event objects, in draft order
        """
        events = []

        for draft in drafts:
            try:
                event = self._process_single_draft(draft)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to process draft '{draft.name}': {e}")
                continue

        logger.info(
            f"Processed {len(events)} valid events out of "
            f"{len(drafts)} drafts"
        )
        return events

    def _process_single_draft(self, draft: DraftEvent) -> Optional[Event]:
        """
        Process a single draft.

        Args:
            draft: DraftEvent to validate

        Returns:
            Event object or None if validation fails
        """
        if not self._validate_required_fields(draft):
            return None

        name = self.normalize_name(draft.name)

        return Event(
            name=name,
            date=draft.date,
            location=draft.location.strip(),
            organizer_contact=draft.organizer_contact.strip(),
            source_url=draft.source_url or '',
            price=draft.price,
            participants_count=draft.participants_count,
            organizer_name=(draft.organizer_name or '').strip() or None,
        )

    def normalize_name(self, name: str) -> str:
        """Collapse whitespace and cap the length of free-text names."""
        name = ' '.join(name.split())
        if len(name) > self.MAX_NAME_LENGTH:
            name = name[:self.MAX_NAME_LENGTH - 3].rstrip() + '...'
        return name

    def _validate_required_fields(self, draft: DraftEvent) -> bool:
        """
        Validate that required fields are present and non-empty.

        Args:
            draft: DraftEvent to validate

        Returns:
            True if valid, False otherwise
        """
        if not draft.name or not draft.name.strip():
            logger.warning(
                f"Dropping event from {draft.source_url}: missing name"
            )
            return False

        if not draft.organizer_contact or not draft.organizer_contact.strip():
            logger.warning(
                f"Dropping event '{draft.name}': missing organizer contact"
            )
            return False

        if draft.date is None:
            logger.warning(f"Dropping event '{draft.name}': missing date")
            return False

        if not draft.location or not draft.location.strip():
            logger.warning(f"Dropping event '{draft.name}': missing location")
            return False

        return True
