"""
Program Records

Typed, immutable views of the raw program records the reports read.

Key Concepts:
- One frozen dataclass per record kind (a tagged union over RecordKind);
  the classifier dispatches on the concrete type.
- Source payloads are loosely typed camelCase dicts. They are parsed once
  at the boundary (RecordSet.from_dict): field aliases are resolved and
  numbers coerced here, never inside the engine.
- RecordSet is a snapshot: tuples only, so a report run reads a single
  consistent view even if the caller mutates its own lists afterwards.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class RecordKind(Enum):
    """Record variants the engine understands."""
    SUBPROJECT = "subproject"
    TRAINING = "training"
    OTHER_ACTIVITY = "other_activity"
    STAFFING = "staffing"
    OFFICE = "office"
    OTHER_EXPENSE = "other_expense"


# Canonical field -> accepted source keys, first match wins
FIELD_ALIASES: Dict[str, List[str]] = {
    "record_id": ["id", "recordId", "record_id"],
    "name": ["name", "title"],
    "operating_unit": ["operatingUnit", "operating_unit", "ou"],
    "funding_year": ["fundingYear", "fundYear", "funding_year", "fund_year"],
    "fund_type": ["fundType", "fund_type"],
    "tier": ["tier"],
    "component": ["component"],
    "location": ["location"],
    "amount": ["amount"],
    "price_per_unit": ["pricePerUnit", "price_per_unit"],
    "number_of_units": ["numberOfUnits", "number_of_units"],
    "actual_number_of_units": ["actualNumberOfUnits", "actual_number_of_units"],
    "object_type": ["objectType", "objectCode", "object_type"],
    "expense_particular": ["expenseParticular", "expense_particular"],
    "uacs_code": ["uacsCode", "uacs_code"],
    "obligation_date": ["obligationDate", "obligationMonth", "obligation_date"],
    "disbursement_date": ["disbursementDate", "disbursementMonth", "disbursement_date"],
    "actual_obligation_date": ["actualObligationDate", "actual_obligation_date"],
    "actual_obligation_amount": ["actualObligationAmount", "actual_obligation_amount"],
    "actual_disbursement_date": ["actualDisbursementDate", "actual_disbursement_date"],
    "actual_disbursement_amount": ["actualDisbursementAmount", "actual_disbursement_amount"],
    "item_type": ["type", "itemType", "item_type"],
    "particulars": ["particulars", "particular"],
    "unit_of_measure": ["unitOfMeasure", "unit_of_measure", "unit"],
    "delivery_date": ["deliveryDate", "delivery_date"],
    "actual_delivery_date": ["actualDeliveryDate", "actual_delivery_date"],
    "package_type": ["packageType", "package_type", "package"],
    "ipo_name": ["indigenousPeopleOrganization", "ipo", "ipo_name"],
    "status": ["status"],
    "estimated_completion_date": ["estimatedCompletionDate", "estimated_completion_date"],
    "actual_completion_date": ["actualCompletionDate", "actual_completion_date"],
    "date": ["date", "targetDate"],
    "actual_date": ["actualDate", "actual_date"],
    "participating_ipos": ["participatingIpos", "participating_ipos"],
    "participants_male": ["participantsMale", "participants_male"],
    "participants_female": ["participantsFemale", "participants_female"],
    "personnel_position": ["personnelPosition", "personnel_position", "position"],
    "annual_salary": ["annualSalary", "annual_salary"],
    "equipment": ["equipment"],
    "ancestral_domain_no": ["ancestralDomainNo", "ancestral_domain_no"],
}


def _field(data: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Value of a canonical field using its aliases."""
    for key in FIELD_ALIASES.get(name, [name]):
        if key in data and data[key] is not None:
            return data[key]
    return default


def _to_float(value: Any) -> float:
    """Tolerant numeric coercion; unparsable values count as zero."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        logger.debug(f"Unparsable number treated as 0: {value!r}")
        return 0.0


def _to_year(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(str(value).strip()))
    except ValueError:
        logger.debug(f"Unparsable year ignored: {value!r}")
        return None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _entries(values: Any, what: str) -> Iterator[Mapping[str, Any]]:
    """Object entries of a payload array; nulls and scalars are skipped."""
    if values is None:
        return
    if not isinstance(values, (list, tuple)):
        logger.debug(f"Skipped non-array {what}: {values!r}")
        return
    for value in values:
        if isinstance(value, Mapping):
            yield value
        else:
            logger.debug(f"Skipped non-object {what} entry: {value!r}")


# ==================== EXPENSE LINES ====================

@dataclass(frozen=True)
class ExpenseLine:
    """
    One dated monetary line of a record.

    Cost is the flat amount when present, else price per unit x units.
    Subproject detail lines also carry physical fields (item type,
    particulars, unit of measure, target and actual units).
    """
    amount: float = 0.0
    price_per_unit: float = 0.0
    number_of_units: float = 0.0
    object_type: Optional[str] = None
    expense_particular: Optional[str] = None
    uacs_code: Optional[str] = None
    obligation_date: Optional[str] = None
    disbursement_date: Optional[str] = None
    actual_obligation_date: Optional[str] = None
    actual_obligation_amount: float = 0.0
    actual_disbursement_date: Optional[str] = None
    actual_disbursement_amount: float = 0.0
    item_type: Optional[str] = None
    particulars: Optional[str] = None
    unit_of_measure: Optional[str] = None
    actual_number_of_units: float = 0.0
    delivery_date: Optional[str] = None
    actual_delivery_date: Optional[str] = None

    @property
    def cost(self) -> float:
        if self.amount:
            return self.amount
        return self.price_per_unit * self.number_of_units

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExpenseLine":
        return cls(
            amount=_to_float(_field(data, "amount")),
            price_per_unit=_to_float(_field(data, "price_per_unit")),
            number_of_units=_to_float(_field(data, "number_of_units")),
            object_type=_to_str(_field(data, "object_type")),
            expense_particular=_to_str(_field(data, "expense_particular")),
            uacs_code=_to_str(_field(data, "uacs_code")),
            obligation_date=_to_str(_field(data, "obligation_date")),
            disbursement_date=_to_str(_field(data, "disbursement_date")),
            actual_obligation_date=_to_str(_field(data, "actual_obligation_date")),
            actual_obligation_amount=_to_float(_field(data, "actual_obligation_amount")),
            actual_disbursement_date=_to_str(_field(data, "actual_disbursement_date")),
            actual_disbursement_amount=_to_float(_field(data, "actual_disbursement_amount")),
            item_type=_to_str(_field(data, "item_type")),
            particulars=_to_str(_field(data, "particulars")),
            unit_of_measure=_to_str(_field(data, "unit_of_measure")),
            actual_number_of_units=_to_float(_field(data, "actual_number_of_units")),
            delivery_date=_to_str(_field(data, "delivery_date")),
            actual_delivery_date=_to_str(_field(data, "actual_delivery_date")),
        )


# ==================== RECORDS ====================

@dataclass(frozen=True)
class ProgramRecord:
    """Fields shared by every record kind."""
    record_id: str = ""
    name: str = ""
    operating_unit: Optional[str] = None
    funding_year: Optional[int] = None
    fund_type: Optional[str] = None
    tier: Optional[str] = None

    kind: ClassVar[RecordKind]

    @property
    def indicator(self) -> str:
        """Row label the record contributes to."""
        return self.name

    @property
    def target_date(self) -> Optional[str]:
        return None

    @property
    def completion_date(self) -> Optional[str]:
        return None

    @property
    def physical_count(self) -> float:
        """Physical target units one record represents."""
        return 1.0

    def expense_lines(self) -> Tuple[ExpenseLine, ...]:
        return ()

    @property
    def total_cost(self) -> float:
        return sum(line.cost for line in self.expense_lines())

    @classmethod
    def _common(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "record_id": str(_field(data, "record_id", "")),
            "name": _to_str(_field(data, "name")) or "",
            "operating_unit": _to_str(_field(data, "operating_unit")),
            "funding_year": _to_year(_field(data, "funding_year")),
            "fund_type": _to_str(_field(data, "fund_type")),
            "tier": _to_str(_field(data, "tier")),
        }


@dataclass(frozen=True)
class Subproject(ProgramRecord):
    """A capital subproject delivered under a package."""
    package_type: Optional[str] = None
    location: Optional[str] = None
    ipo_name: Optional[str] = None
    status: Optional[str] = None
    estimated_completion_date: Optional[str] = None
    actual_completion_date: Optional[str] = None
    details: Tuple[ExpenseLine, ...] = ()

    kind: ClassVar[RecordKind] = RecordKind.SUBPROJECT

    @property
    def target_date(self) -> Optional[str]:
        return self.estimated_completion_date

    @property
    def completion_date(self) -> Optional[str]:
        return self.actual_completion_date

    def expense_lines(self) -> Tuple[ExpenseLine, ...]:
        return self.details

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Subproject":
        return cls(
            **cls._common(data),
            package_type=_to_str(_field(data, "package_type")),
            location=_to_str(_field(data, "location")),
            ipo_name=_to_str(_field(data, "ipo_name")),
            status=_to_str(_field(data, "status")),
            estimated_completion_date=_to_str(_field(data, "estimated_completion_date")),
            actual_completion_date=_to_str(_field(data, "actual_completion_date")),
            details=tuple(ExpenseLine.from_dict(d) for d in _entries(data.get("details"), "details")),
        )


@dataclass(frozen=True)
class Activity(ProgramRecord):
    """Dated event with participants: the base of trainings and other activities."""
    component: Optional[str] = None
    date: Optional[str] = None
    actual_date: Optional[str] = None
    location: Optional[str] = None
    participating_ipos: Tuple[str, ...] = ()
    participants_male: float = 0.0
    participants_female: float = 0.0
    expenses: Tuple[ExpenseLine, ...] = ()

    @property
    def target_date(self) -> Optional[str]:
        return self.date

    @property
    def completion_date(self) -> Optional[str]:
        return self.actual_date

    @property
    def participants(self) -> float:
        return self.participants_male + self.participants_female

    def expense_lines(self) -> Tuple[ExpenseLine, ...]:
        return self.expenses

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Activity":
        ipos = _field(data, "participating_ipos") or []
        if isinstance(ipos, str):
            ipos = [ipos]
        return cls(
            **cls._common(data),
            component=_to_str(_field(data, "component")),
            date=_to_str(_field(data, "date")),
            actual_date=_to_str(_field(data, "actual_date")),
            location=_to_str(_field(data, "location")),
            participating_ipos=tuple(str(i).strip() for i in ipos if i is not None and str(i).strip()),
            participants_male=_to_float(_field(data, "participants_male")),
            participants_female=_to_float(_field(data, "participants_female")),
            expenses=tuple(ExpenseLine.from_dict(e) for e in _entries(data.get("expenses"), "expenses")),
        )


@dataclass(frozen=True)
class Training(Activity):
    kind: ClassVar[RecordKind] = RecordKind.TRAINING


@dataclass(frozen=True)
class OtherActivity(Activity):
    kind: ClassVar[RecordKind] = RecordKind.OTHER_ACTIVITY


@dataclass(frozen=True)
class ProgramManagementItem(ProgramRecord):
    """
    A Program Management requirement with a single dated cost.

    The record is its own expense line: obligation and disbursement
    dates and the object code sit on the record itself.
    """
    uacs_code: Optional[str] = None
    object_type: Optional[str] = None
    expense_particular: Optional[str] = None
    obligation_date: Optional[str] = None
    disbursement_date: Optional[str] = None
    actual_date: Optional[str] = None
    actual_obligation_date: Optional[str] = None
    actual_obligation_amount: float = 0.0
    actual_disbursement_date: Optional[str] = None
    actual_disbursement_amount: float = 0.0

    @property
    def cost(self) -> float:
        return 0.0

    @property
    def target_date(self) -> Optional[str]:
        return self.obligation_date

    @property
    def completion_date(self) -> Optional[str]:
        return self.actual_date or self.actual_obligation_date

    def expense_lines(self) -> Tuple[ExpenseLine, ...]:
        return (
            ExpenseLine(
                amount=self.cost,
                object_type=self.object_type,
                expense_particular=self.expense_particular,
                uacs_code=self.uacs_code,
                obligation_date=self.obligation_date,
                disbursement_date=self.disbursement_date,
                actual_obligation_date=self.actual_obligation_date,
                actual_obligation_amount=self.actual_obligation_amount,
                actual_disbursement_date=self.actual_disbursement_date,
                actual_disbursement_amount=self.actual_disbursement_amount,
            ),
        )

    @classmethod
    def _pm_common(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        common = cls._common(data)
        common.update(
            uacs_code=_to_str(_field(data, "uacs_code")),
            object_type=_to_str(_field(data, "object_type")),
            expense_particular=_to_str(_field(data, "expense_particular")),
            obligation_date=_to_str(_field(data, "obligation_date")),
            disbursement_date=_to_str(_field(data, "disbursement_date")),
            actual_date=_to_str(_field(data, "actual_date")),
            actual_obligation_date=_to_str(_field(data, "actual_obligation_date")),
            actual_obligation_amount=_to_float(_field(data, "actual_obligation_amount")),
            actual_disbursement_date=_to_str(_field(data, "actual_disbursement_date")),
            actual_disbursement_amount=_to_float(_field(data, "actual_disbursement_amount")),
        )
        return common


@dataclass(frozen=True)
class StaffingRequirement(ProgramManagementItem):
    personnel_position: str = ""
    annual_salary: float = 0.0

    kind: ClassVar[RecordKind] = RecordKind.STAFFING

    @property
    def indicator(self) -> str:
        return self.personnel_position or self.name

    @property
    def cost(self) -> float:
        return self.annual_salary

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaffingRequirement":
        return cls(
            **cls._pm_common(data),
            personnel_position=_to_str(_field(data, "personnel_position")) or "",
            annual_salary=_to_float(_field(data, "annual_salary")),
        )


@dataclass(frozen=True)
class OfficeRequirement(ProgramManagementItem):
    equipment: str = ""
    price_per_unit: float = 0.0
    number_of_units: float = 0.0

    kind: ClassVar[RecordKind] = RecordKind.OFFICE

    @property
    def indicator(self) -> str:
        return self.equipment or self.name

    @property
    def cost(self) -> float:
        return self.price_per_unit * self.number_of_units

    @property
    def physical_count(self) -> float:
        return self.number_of_units or 1.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OfficeRequirement":
        return cls(
            **cls._pm_common(data),
            equipment=_to_str(_field(data, "equipment")) or "",
            price_per_unit=_to_float(_field(data, "price_per_unit")),
            number_of_units=_to_float(_field(data, "number_of_units")),
        )


@dataclass(frozen=True)
class OtherExpense(ProgramManagementItem):
    particulars: str = ""
    amount: float = 0.0

    kind: ClassVar[RecordKind] = RecordKind.OTHER_EXPENSE

    @property
    def indicator(self) -> str:
        return self.particulars or self.name

    @property
    def cost(self) -> float:
        return self.amount

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OtherExpense":
        return cls(
            **cls._pm_common(data),
            particulars=_to_str(_field(data, "particulars")) or "",
            amount=_to_float(_field(data, "amount")),
        )


@dataclass(frozen=True)
class IpoRecord:
    """Indigenous peoples organization reference row."""
    name: str
    ancestral_domain_no: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IpoRecord":
        return cls(
            name=_to_str(_field(data, "name")) or "",
            ancestral_domain_no=_to_str(_field(data, "ancestral_domain_no")),
            location=_to_str(_field(data, "location")),
        )


# ==================== RECORD SET ====================

# Payload key -> record class
PAYLOAD_KEYS: Dict[str, type] = {
    "subprojects": Subproject,
    "trainings": Training,
    "otherActivities": OtherActivity,
    "staffingReqs": StaffingRequirement,
    "officeReqs": OfficeRequirement,
    "otherProgramExpenses": OtherExpense,
}


@dataclass(frozen=True)
class RecordSet:
    """Immutable snapshot of every record a report run reads."""
    subprojects: Tuple[Subproject, ...] = ()
    trainings: Tuple[Training, ...] = ()
    other_activities: Tuple[OtherActivity, ...] = ()
    staffing: Tuple[StaffingRequirement, ...] = ()
    office: Tuple[OfficeRequirement, ...] = ()
    other_expenses: Tuple[OtherExpense, ...] = ()
    ipos: Tuple[IpoRecord, ...] = field(default=())

    def iter_records(self) -> Iterator[ProgramRecord]:
        """All program records in a fixed kind order."""
        yield from self.subprojects
        yield from self.trainings
        yield from self.other_activities
        yield from self.staffing
        yield from self.office
        yield from self.other_expenses

    def __len__(self) -> int:
        return sum(1 for _ in self.iter_records())

    def ipo_index(self) -> Dict[str, IpoRecord]:
        """IPOs by name, for ancestral-domain lookups."""
        return {ipo.name: ipo for ipo in self.ipos}

    @classmethod
    def from_records(cls, records: Sequence[ProgramRecord], ipos: Sequence[IpoRecord] = ()) -> "RecordSet":
        by_kind: Dict[RecordKind, List[ProgramRecord]] = {kind: [] for kind in RecordKind}
        for record in records:
            by_kind[record.kind].append(record)
        return cls(
            subprojects=tuple(by_kind[RecordKind.SUBPROJECT]),
            trainings=tuple(by_kind[RecordKind.TRAINING]),
            other_activities=tuple(by_kind[RecordKind.OTHER_ACTIVITY]),
            staffing=tuple(by_kind[RecordKind.STAFFING]),
            office=tuple(by_kind[RecordKind.OFFICE]),
            other_expenses=tuple(by_kind[RecordKind.OTHER_EXPENSE]),
            ipos=tuple(ipos),
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RecordSet":
        """
        Parse a raw payload of record arrays keyed by kind.

        Args:
            payload: {"subprojects": [...], "trainings": [...], ..., "ipos": [...]}

        Returns:
            RecordSet snapshot
        """
        parsed: List[ProgramRecord] = []
        for key, record_cls in PAYLOAD_KEYS.items():
            for raw in _entries(payload.get(key), key):
                parsed.append(record_cls.from_dict(raw))
        ipos = [IpoRecord.from_dict(raw) for raw in _entries(payload.get("ipos"), "ipos")]
        record_set = cls.from_records(parsed, ipos)
        logger.info(f"Parsed {len(parsed)} records and {len(ipos)} IPOs")
        return record_set
