import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional
from pymongo.errors import DuplicateKeyError

from erp_ledger.config import settings
from erp_ledger.database import db
from erp_ledger.models.accounting import AccountingEntry, EntryStatus, JournalLine
from erp_ledger.models.audit import ActionType
from erp_ledger.repositories.entry import start_of
from erp_ledger.services.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from erp_ledger.services.periods import period_service
from erp_ledger.validators import (
    EntryValidationError, NormalizedLine, validate_entry, validate_entry_update
)

logger = logging.getLogger(__name__)

ENTRY_NUMBER_PREFIX = "ECR"

def format_entry_number(sequence: int, period: str) -> str:
    """ECR-YYYY-MM-NNNNN"""
    return f"{ENTRY_NUMBER_PREFIX}-{period}-{sequence:05d}"

# attempts at claiming a free entry number before giving up
MAX_NUMBERING_ATTEMPTS = 3

def to_journal_lines(lines: Iterable[NormalizedLine]) -> List[JournalLine]:
    return [
        JournalLine(
            account=line.account,
            label=line.label,
            debit=float(line.debit),
            credit=float(line.credit),
            reference=line.reference
        )
        for line in lines
    ]

class EntryWorkflow:
    """
    Lifecycle of accounting entries: draft -> posted -> validated, or cancelled.

    Every write goes through the entry validators first; nothing is stored
    unless the payload is accepted as a whole.
    """

    async def get_entry(self, entry_id: str) -> AccountingEntry:
        entry = await db.entries.get(entry_id)
        if not entry:
            raise NotFoundError("Accounting entry not found")
        return entry

    async def create_entry(self, payload: Mapping[str, Any], company_id: str,
                           user_id: Optional[str] = None, today: Optional[date] = None) -> AccountingEntry:
        result = validate_entry(payload, today=today)
        if not result.ok:
            logger.warning(f"Entry rejected for company {company_id}: {len(result.errors)} validation errors")
            raise EntryValidationError(result.errors)
        normalized = result.value

        await period_service.ensure_open(company_id, normalized.period)

        entry = AccountingEntry(
            number="",
            company_id=company_id,
            journal=normalized.journal,
            date=start_of(normalized.date),
            period=normalized.period,
            reference=normalized.reference,
            description=normalized.description,
            currency=settings.DEFAULT_CURRENCY,
            lines=to_journal_lines(normalized.lines),
            total_debit=float(normalized.total_debit),
            total_credit=float(normalized.total_credit),
            related_document=normalized.related_document,
            attachments=list(normalized.attachments),
            status=EntryStatus.DRAFT,
            created_by=user_id
        )
        await self._insert_numbered(entry)

        await db.audit.log_action(
            company_id=company_id,
            actor_id=user_id,
            action_type=ActionType.ENTRY_CREATED,
            entity=entry.number,
            details=f"Entry {entry.number} created in journal {entry.journal.value}",
            metadata={"total_debit": entry.total_debit, "total_credit": entry.total_credit}
        )
        logger.info(f"Accounting entry created: {entry.number}")
        return entry

    async def _insert_numbered(self, entry: AccountingEntry) -> AccountingEntry:
        """Store ``entry`` under the next free number of its period."""
        for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
            entry.sequence = await db.entries.last_sequence_in_period(entry.company_id, entry.period) + 1
            entry.number = format_entry_number(entry.sequence, entry.period)
            try:
                return await db.entries.create(entry)
            except DuplicateKeyError:
                logger.warning(f"Entry number {entry.number} taken concurrently (attempt {attempt})")
        raise ConflictError(f"Could not allocate an entry number in period {entry.period}; retry the request")

    async def update_entry(self, entry_id: str, payload: Mapping[str, Any],
                           user_id: Optional[str] = None, today: Optional[date] = None) -> AccountingEntry:
        entry = await self.get_entry(entry_id)
        if entry.status in (EntryStatus.VALIDATED, EntryStatus.CANCELLED):
            raise InvalidTransitionError(f"A {entry.status.value} entry cannot be modified")

        result = validate_entry_update(payload, today=today)
        if not result.ok:
            raise EntryValidationError(result.errors)
        changes = result.value

        await period_service.ensure_open(entry.company_id, entry.period)
        if changes.period and changes.period != entry.period:
            await period_service.ensure_open(entry.company_id, changes.period)

        updates: Dict[str, Any] = {}
        for field, value in changes.changes().items():
            if field == "lines":
                updates["lines"] = [line.model_dump() for line in to_journal_lines(changes.lines)]
            elif field == "date":
                updates["date"] = start_of(value)
            elif field in ("total_debit", "total_credit"):
                updates[field] = float(value)
            elif field == "attachments":
                updates["attachments"] = list(value)
            else:
                updates[field] = value
        updates["updated_at"] = datetime.utcnow()

        updated = await db.entries.update(entry.id, updates)
        await db.audit.log_action(
            company_id=entry.company_id,
            actor_id=user_id,
            action_type=ActionType.ENTRY_UPDATED,
            entity=entry.number,
            details=f"Entry {entry.number} updated",
            metadata={"fields": sorted(k for k in updates if k != "updated_at")}
        )
        return updated

    async def delete_entry(self, entry_id: str, user_id: Optional[str] = None) -> bool:
        entry = await self.get_entry(entry_id)
        if entry.status == EntryStatus.VALIDATED:
            raise InvalidTransitionError("A validated entry cannot be deleted")
        await period_service.ensure_open(entry.company_id, entry.period)

        deleted = await db.entries.delete(entry.id)
        await db.audit.log_action(
            company_id=entry.company_id,
            actor_id=user_id,
            action_type=ActionType.ENTRY_DELETED,
            entity=entry.number,
            details=f"Entry {entry.number} deleted"
        )
        logger.info(f"Accounting entry deleted: {entry.number}")
        return deleted

    async def post_entry(self, entry_id: str, user_id: Optional[str] = None) -> AccountingEntry:
        entry = await self.get_entry(entry_id)
        if entry.status != EntryStatus.DRAFT:
            raise InvalidTransitionError("Only draft entries can be posted")
        if not entry.is_balanced():
            raise InvalidTransitionError(
                f"Entry {entry.number} is not balanced: DR {entry.total_debit} != CR {entry.total_credit}"
            )
        await period_service.ensure_open(entry.company_id, entry.period)
        return await self._transition(entry, EntryStatus.POSTED, ActionType.ENTRY_POSTED, user_id)

    async def validate_posted_entry(self, entry_id: str, user_id: Optional[str] = None) -> AccountingEntry:
        entry = await self.get_entry(entry_id)
        if entry.status == EntryStatus.VALIDATED:
            raise InvalidTransitionError("This entry is already validated")
        if entry.status != EntryStatus.POSTED:
            raise InvalidTransitionError("Only posted entries can be validated")
        return await self._transition(
            entry, EntryStatus.VALIDATED, ActionType.ENTRY_VALIDATED, user_id,
            extra={"validated_by": user_id, "validated_at": datetime.utcnow()}
        )

    async def cancel_entry(self, entry_id: str, user_id: Optional[str] = None) -> AccountingEntry:
        entry = await self.get_entry(entry_id)
        if entry.status == EntryStatus.VALIDATED:
            raise InvalidTransitionError("A validated entry cannot be cancelled")
        if entry.status == EntryStatus.CANCELLED:
            raise InvalidTransitionError("This entry is already cancelled")
        return await self._transition(entry, EntryStatus.CANCELLED, ActionType.ENTRY_CANCELLED, user_id)

    async def _transition(self, entry: AccountingEntry, status: EntryStatus, action: ActionType,
                          user_id: Optional[str], extra: Optional[Dict[str, Any]] = None) -> AccountingEntry:
        updates = {"status": status.value, "updated_at": datetime.utcnow(), **(extra or {})}
        updated = await db.entries.update(entry.id, updates)
        await db.audit.log_action(
            company_id=entry.company_id,
            actor_id=user_id,
            action_type=action,
            entity=entry.number,
            details=f"Entry {entry.number}: {entry.status.value} -> {status.value}"
        )
        logger.info(f"Entry {entry.number} moved from {entry.status.value} to {status.value}")
        return updated

entry_workflow = EntryWorkflow()
