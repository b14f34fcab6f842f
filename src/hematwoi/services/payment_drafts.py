"""Offline queue of debt payments waiting to be submitted.

Drafts live in a small JSON file next to the database. A missing or corrupt
file reads as an empty queue; write failures are logged and dropped, since
a draft is only ever a convenience copy of user input.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from ..domain.errors import HematWoiError, ValidationError
from ..logging_config import get_logger
from ..utils.normalize import safe_number, utcnow
from .debt_ledger import DebtLedger, PaymentInput

logger = get_logger(__name__)


@dataclass(slots=True)
class PaymentDraft:
    """A payment captured while the ledger was unreachable."""

    id: str
    debt_id: int
    account_id: Optional[int]
    amount: float
    paid_at: str
    note: Optional[str] = None
    user_id: Optional[int] = None
    created_at: str = field(default_factory=lambda: utcnow().isoformat())
    version: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Optional["PaymentDraft"]:
        """Build a draft from stored JSON; incomplete entries yield None."""

        draft_id = str(data.get("id") or "").strip()
        debt_id = data.get("debt_id")
        account_id = data.get("account_id")
        if not draft_id or debt_id in (None, "") or account_id in (None, ""):
            return None
        try:
            debt_id = int(debt_id)
            account_id = int(account_id)
        except (TypeError, ValueError):
            return None
        user_id = data.get("user_id")
        try:
            user_id = int(user_id) if user_id not in (None, "") else None
        except (TypeError, ValueError):
            user_id = None
        paid_at = data.get("paid_at")
        created_at = data.get("created_at")
        version = data.get("version")
        return cls(
            id=draft_id,
            debt_id=debt_id,
            account_id=account_id,
            amount=safe_number(data.get("amount")),
            paid_at=paid_at if isinstance(paid_at, str) else utcnow().date().isoformat(),
            note=data.get("note"),
            user_id=user_id,
            created_at=created_at if isinstance(created_at, str) else utcnow().isoformat(),
            version=version if isinstance(version, int) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _version() -> int:
    return int(time.time() * 1000)


class PaymentDraftStore:
    """JSON-file backed draft queue, newest draft first."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> list[PaymentDraft]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Payment draft file unreadable", extra={"path": str(self.path)})
            return []
        if not isinstance(raw, list):
            return []
        drafts = []
        for item in raw:
            if isinstance(item, Mapping):
                draft = PaymentDraft.from_mapping(item)
                if draft is not None:
                    drafts.append(draft)
        return drafts

    def _write(self, drafts: Iterable[PaymentDraft]) -> None:
        payload = [draft.to_dict() for draft in drafts]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError:
            logger.warning("Payment draft file not written", extra={"path": str(self.path)})

    def list_drafts(self) -> list[PaymentDraft]:
        return self._read()

    def list_drafts_by_debt(self, debt_id: int) -> list[PaymentDraft]:
        if not debt_id:
            return []
        return [draft for draft in self._read() if draft.debt_id == int(debt_id)]

    def save_draft(self, draft: PaymentDraft) -> PaymentDraft:
        """Insert ``draft`` at the front, replacing any draft with the same id."""

        if not draft.id:
            raise ValidationError("Draft harus memiliki id.", field="id")
        draft.version = _version()
        remaining = [item for item in self._read() if item.id != draft.id]
        self._write([draft, *remaining])
        return draft

    def remove_draft(self, draft_id: str) -> bool:
        if not draft_id:
            return False
        existing = self._read()
        remaining = [item for item in existing if item.id != draft_id]
        if len(remaining) == len(existing):
            return False
        self._write(remaining)
        return True

    def replace_drafts(self, drafts: Iterable[PaymentDraft]) -> None:
        version = _version()
        replaced = []
        for draft in drafts:
            draft.version = version
            replaced.append(draft)
        self._write(replaced)


@dataclass
class FlushReport:
    submitted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


def flush_drafts(ledger: DebtLedger, store: PaymentDraftStore, *, user_id: int) -> FlushReport:
    """Submit queued drafts through the ledger.

    Each draft is sent with its id as ``client_ref`` so a draft that was
    already accepted before a crash is not recorded twice. Drafts rejected by
    the ledger stay queued, and drafts owned by another user are left in place
    and listed in ``skipped``.
    """

    report = FlushReport()
    for draft in reversed(store.list_drafts()):
        if draft.user_id is not None and draft.user_id != user_id:
            report.skipped.append(draft.id)
            continue
        payload = PaymentInput(
            amount=draft.amount,
            date=draft.paid_at,
            notes=draft.note,
            account_id=draft.account_id,
            client_ref=draft.id,
        )
        try:
            ledger.create_payment(draft.debt_id, payload, user_id=user_id)
        except HematWoiError as exc:
            report.failed[draft.id] = exc.message
            continue
        store.remove_draft(draft.id)
        report.submitted.append(draft.id)

    logger.info(
        "Payment drafts flushed",
        extra={
            "user_id": user_id,
            "submitted": len(report.submitted),
            "failed": len(report.failed),
            "skipped": len(report.skipped),
        },
    )
    return report
