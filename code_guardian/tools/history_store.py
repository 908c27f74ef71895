"""History store for persisted analyses, keyed by user."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..models import AnalysisRecord, AnalysisResult
from ..utils import get_logger


class HistoryStore:
    """
    Append-only store of analysis records, grouped per user.

    Records are never updated in place. With a path, the store loads the file
    on creation and rewrites it after every append; without one it lives in
    memory only. An unreadable file is logged and the store starts empty; it
    is replaced by the next successful append. A failed write raises OSError
    and leaves the in-memory records unchanged.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self.logger = get_logger()
        self._records: Dict[str, List[AnalysisRecord]] = {}

        if self.path and self.path.exists():
            self._load()

    def append(self, record: AnalysisRecord) -> AnalysisRecord:
        """Store one record and persist the store if it is file-backed."""
        records = self._records.setdefault(record.user_id, [])
        records.append(record)
        if self.path:
            try:
                self._save()
            except OSError:
                # Memory must match the file
                records.pop()
                if not records:
                    del self._records[record.user_id]
                raise
        return record

    def record_analysis(
        self,
        user_id: str,
        code: str,
        result: AnalysisResult,
        timestamp: Optional[datetime] = None,
    ) -> AnalysisRecord:
        """Build a record from an analysis result and append it."""
        record = AnalysisRecord(
            analysis_id=uuid.uuid4().hex,
            user_id=user_id,
            timestamp=timestamp or datetime.now(timezone.utc),
            technical_debt_score=result.score,
            issues=result.issues,
            explanation=result.explanation,
            security_vulnerabilities=result.security_vulnerabilities,
            code=code,
        )
        return self.append(record)

    def list_for_user(self, user_id: str) -> List[AnalysisRecord]:
        """Records of one user, newest first."""
        records = self._records.get(user_id, [])
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    def get(self, user_id: str, analysis_id: str) -> Optional[AnalysisRecord]:
        """Fetch one record, only if it belongs to ``user_id``."""
        for record in self._records.get(user_id, []):
            if record.analysis_id == analysis_id:
                return record
        return None

    def clear(self):
        """Clear all stored records (in memory only)."""
        self._records.clear()

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def _load(self):
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            records = [AnalysisRecord.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Ignoring unreadable history file {self.path}: {e}")
            return
        for record in records:
            self._records.setdefault(record.user_id, []).append(record)
        self.logger.debug(f"Loaded {len(self)} analyses from {self.path}")

    def _save(self):
        records = [r.to_dict() for user in self._records.values() for r in user]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(records, indent=2), encoding="utf-8")
        tmp.replace(self.path)
