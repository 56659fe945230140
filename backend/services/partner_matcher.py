"""
partner_matcher.py — 1-1 accountability partner matching.
Finds one unmatched user with the same primary focus and links both users
to each other. The link is two writes, each only applied while the row is
still unmatched; if the second one fails the first is undone before the
error is raised.
"""

import logging
from datetime import date, timedelta

from errors import StoreError, LookupFailed, MatchWriteFailed

logger = logging.getLogger(__name__)


def is_last_day_of_month(day: date) -> bool:
    return (day + timedelta(days=1)).month != day.month


def month_string(day: date) -> str:
    """'YYYY-MM' for the given day."""
    return f"{day.year:04d}-{day.month:02d}"


class PartnerMatcher:
    @staticmethod
    def match(store, user_id: str, focus: str) -> dict | None:
        """
        Link user_id with an unmatched user sharing ``focus``.
        Returns the partner row, or None when the user is already matched or
        nobody is available. Raises LookupFailed / MatchWriteFailed.
        """
        with store.unit_of_work():
            try:
                current = store.get_user(user_id)
            except StoreError as e:
                raise LookupFailed(f"Could not load user {user_id}: {e}") from e
            if current is None:
                raise LookupFailed(f"User {user_id} not found")
            if current.get("partner_id"):
                return None

            try:
                candidate = store.find_unmatched_partner(focus, user_id)
            except StoreError as e:
                raise LookupFailed(f"Could not search for a partner: {e}") from e
            if candidate is None:
                return None

            partner_id = candidate["id"]
            try:
                claimed = store.set_partner(user_id, partner_id, only_if_unmatched=True)
            except StoreError as e:
                raise MatchWriteFailed(f"Could not link {user_id} to {partner_id}: {e}") from e
            if not claimed:
                # A concurrent request matched user_id first.
                return None

            try:
                linked = store.set_partner(partner_id, user_id, only_if_unmatched=True)
                failure = None if linked else f"{partner_id} was matched by someone else"
            except StoreError as e:
                failure = str(e)

            if failure:
                PartnerMatcher._unlink(store, user_id, partner_id)
                raise MatchWriteFailed(f"Could not link {partner_id} back to {user_id}: {failure}")

        logger.info(f"Matched {user_id} with {partner_id} on '{focus}'")
        return candidate

    @staticmethod
    def _unlink(store, user_id: str, partner_id: str):
        try:
            if store.set_partner(user_id, None, only_if_partner=partner_id):
                logger.warning(f"Rolled back partner link for {user_id}")
        except StoreError as e:
            # Leaves user_id pointing at a partner that does not point back.
            logger.error(f"Rollback of partner link for {user_id} failed: {e}")
