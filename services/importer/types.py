"""
Import Pipeline Type Definitions

Dataclasses passed between the pipeline stages. A RawRow and its
ColumnMapping are turned into an ExtractedRecord exactly once; every
later stage works from that record.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .exceptions import InvalidRequestError


class DuplicateReason(str, Enum):
    """Why a record will not be imported."""
    EMAIL_EXISTS = "email exists"
    PHONE_EXISTS = "phone exists"
    DUPLICATE_IN_BATCH = "duplicate in batch"


class ImportStage(Enum):
    """Orchestrator states. Transitions only move forward."""
    VALIDATING_LEAD_SOURCES = "validating_lead_sources"
    DETECTING_DUPLICATES = "detecting_duplicates"
    IMPORTING = "importing"
    ABORTED = "aborted"
    NO_OP_COMPLETED = "no_op_completed"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RawRow:
    """One spreadsheet row: formatted cell values plus its zero-based index."""
    row_index: int
    values: Tuple[str, ...] = ()

    def cell(self, index: Optional[int]) -> str:
        """Return the formatted value at a column, or '' when unmapped or absent."""
        if index is None or index < 0 or index >= len(self.values):
            return ''
        value = self.values[index]
        return '' if value is None else str(value)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'RawRow':
        """
        Build a row from the browser payload.

        Expected shape: {"rowIndex": 3, "data": {"values": [{"formattedValue": "..."}]}}
        """
        if not isinstance(payload, dict) or 'rowIndex' not in payload:
            raise InvalidRequestError('Each selected row needs a rowIndex and data.values')
        data = payload.get('data') or {}
        cells = (data.get('values') if isinstance(data, dict) else data) or []
        if not isinstance(cells, list):
            raise InvalidRequestError('data.values must be a list of cells')
        values = tuple(_formatted(cell) for cell in cells)
        try:
            row_index = int(payload['rowIndex'])
        except (TypeError, ValueError):
            raise InvalidRequestError(
                f"rowIndex must be an integer, got {payload['rowIndex']!r}"
            ) from None
        return cls(row_index=row_index, values=values)


def _formatted(cell):
    if isinstance(cell, dict):
        value = cell.get('formattedValue')
    else:
        value = cell
    return '' if value is None else str(value)


# Request keys in the order they appear on the mapping form.
MAPPING_FIELDS = (
    ('first_name', 'firstName'),
    ('last_name', 'lastName'),
    ('email', 'email'),
    ('phone', 'phone'),
    ('gender', 'gender'),
    ('birth_date', 'birthDate'),
    ('age', 'age'),
    ('occupation', 'occupation'),
    ('registration_date', 'registrationDate'),
    ('hear_us_from', 'hearUsFrom'),
)


@dataclass(frozen=True)
class ColumnMapping:
    """
    Column index for each importable field.

    Any field may be left unmapped (None). post_it_columns lists the
    columns joined into the profile note, in order.
    """
    first_name: Optional[int] = None
    last_name: Optional[int] = None
    email: Optional[int] = None
    phone: Optional[int] = None
    gender: Optional[int] = None
    birth_date: Optional[int] = None
    age: Optional[int] = None
    occupation: Optional[int] = None
    registration_date: Optional[int] = None
    hear_us_from: Optional[int] = None
    post_it_columns: Tuple[int, ...] = ()

    def __post_init__(self):
        for attr, key in MAPPING_FIELDS:
            index = getattr(self, attr)
            if index is not None and index < 0:
                raise InvalidRequestError(f'Column index for {key} must be >= 0, got {index}')
        for index in self.post_it_columns:
            if index < 0:
                raise InvalidRequestError(f'postItColumns indices must be >= 0, got {index}')

    @classmethod
    def from_payload(cls, payload: Dict[str, Any],
                     default_post_it_columns: Sequence[int] = ()) -> 'ColumnMapping':
        """Build a mapping from the camelCase request body."""
        if not isinstance(payload, dict):
            raise InvalidRequestError('columnMapping must be an object')

        kwargs = {}
        for attr, key in MAPPING_FIELDS:
            kwargs[attr] = _as_index(payload.get(key), key)

        post_it = payload.get('postItColumns')
        if post_it is None:
            post_it = default_post_it_columns
        if not isinstance(post_it, (list, tuple)):
            raise InvalidRequestError('postItColumns must be a list of column indices')
        columns = tuple(_as_index(index, 'postItColumns') for index in post_it)
        if None in columns:
            raise InvalidRequestError('postItColumns entries must be column indices')
        kwargs['post_it_columns'] = columns
        return cls(**kwargs)


def _as_index(value, key):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f'Column index for {key} must be an integer, got {value!r}') from None


@dataclass(frozen=True)
class ExtractedRecord:
    """Typed values pulled out of one RawRow."""
    row_index: int
    first_name: str = ''
    last_name: str = ''
    email: Optional[str] = None
    phone: Optional[str] = None
    gender_code: int = 1
    birth_date: Optional[date] = None
    age: Optional[int] = None
    occupation: str = ''
    registration_date: Optional[date] = None
    hear_us_from: Optional[str] = None
    note_text: str = ''
    # Cell values as they appeared in the sheet, for reporting.
    source_email: str = ''
    source_phone: str = ''


@dataclass(frozen=True)
class DuplicateVerdict:
    row_index: int
    is_duplicate: bool
    reason: Optional[DuplicateReason] = None
    matched_profile_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rowIndex': self.row_index,
            'reason': self.reason.value if self.reason else None,
            'existingProfileId': self.matched_profile_id,
        }


@dataclass
class DuplicateReport:
    """Records split into importable and duplicate, with one verdict per input record."""
    new_records: List[ExtractedRecord] = field(default_factory=list)
    duplicates: List[DuplicateVerdict] = field(default_factory=list)
    verdicts: List[DuplicateVerdict] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.verdicts)


@dataclass(frozen=True)
class LeadSourceMatch:
    value: str
    id: str
    lead_group: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'value': self.value, 'id': self.id, 'leadGroup': self.lead_group}


@dataclass
class LeadSourceReport:
    existing: List[LeadSourceMatch] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    suggested_statements: List[str] = field(default_factory=list)

    @property
    def can_proceed(self) -> bool:
        return not self.missing

    @property
    def total_values(self) -> int:
        return len(self.existing) + len(self.missing)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalValues': self.total_values,
            'existingValues': [match.to_dict() for match in self.existing],
            'missingValues': list(self.missing),
            'sqlQueries': list(self.suggested_statements),
            'canProceed': self.can_proceed,
        }


@dataclass(frozen=True)
class RowOutcome:
    """What happened to one row during the insert stage."""
    row_index: int
    email: str = ''
    phone: str = ''
    message: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'rowIndex': self.row_index, 'email': self.email, 'phone': self.phone}
        for key in ('message', 'reason', 'error'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class ImportBatchResult:
    successful: List[RowOutcome] = field(default_factory=list)
    failed: List[RowOutcome] = field(default_factory=list)
    skipped: List[RowOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'successful': [outcome.to_dict() for outcome in self.successful],
            'failed': [outcome.to_dict() for outcome in self.failed],
            'skipped': [outcome.to_dict() for outcome in self.skipped],
        }


@dataclass
class ImportReport:
    """Everything the caller needs to know about one import attempt."""
    stage: ImportStage
    total_rows: int
    results: ImportBatchResult = field(default_factory=ImportBatchResult)
    duplicates: List[DuplicateVerdict] = field(default_factory=list)
    lead_sources: Optional[LeadSourceReport] = None
    message: str = ''
    error: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.stage in (ImportStage.COMPLETED, ImportStage.NO_OP_COMPLETED)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': self.success,
            'status': self.stage.value,
            'message': self.message,
            'totalRows': self.total_rows,
            'successfulRows': len(self.results.successful),
            'failedRows': len(self.results.failed),
            'skippedRows': len(self.results.skipped),
            'duplicateRows': len(self.duplicates),
            'insertionResults': self.results.to_dict(),
        }
        if self.duplicates:
            data['duplicateDetails'] = [verdict.to_dict() for verdict in self.duplicates]
        if self.lead_sources is not None:
            data['leadSourceData'] = self.lead_sources.to_dict()
        if self.error:
            data['error'] = self.error
        if self.suggestion:
            data['suggestion'] = self.suggestion
        return data
