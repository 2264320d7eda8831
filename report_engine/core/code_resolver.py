"""
Object Code Resolution

Maps a budget object-use (UACS) code to its object type (MOOE or CO) and
descriptive particular by reverse lookup through a read-only reference
table shaped {objectType: {particular: {code: description}}}.

Key Concepts:
- MOOE: maintenance and other operating expenses
- CO: capital outlay
- Lookup searches MOOE before CO; the first match wins.
- Unknown codes never fail. They resolve to the declared object type (or
  MOOE) and the declared particular (or a per-kind default particular).
- CodeLayout is the per-run column layout: reference codes first, then any
  codes discovered in records, grouped by object type and particular.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class ObjectType(Enum):
    """Budget object types, in lookup order."""
    MOOE = "MOOE"
    CO = "CO"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ObjectType"]:
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class ResolvedCode:
    """Object type and labels for one code."""
    code: str
    object_type: ObjectType
    particular: str
    description: str = ""
    in_reference: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "object_type": self.object_type.value,
            "particular": self.particular,
            "description": self.description,
            "in_reference": self.in_reference,
        }


class CodeReference:
    """
    Read-only reverse index over the object-code reference table.

    Usage:
        ref = CodeReference({"MOOE": {"Training Expenses": {"50202010": "Training"}}})
        ref.resolve("50202010").object_type   # ObjectType.MOOE
        ref.resolve("99999999").in_reference  # False
    """

    def __init__(self, table: Optional[Mapping[str, Mapping[str, Mapping[str, str]]]] = None):
        self._table: Dict[ObjectType, Dict[str, Dict[str, str]]] = {t: {} for t in ObjectType}
        self._index: Dict[str, ResolvedCode] = {}

        for raw_type, particulars in (table or {}).items():
            object_type = ObjectType.parse(raw_type)
            if object_type is None:
                logger.warning(f"Ignoring unknown object type in code reference: {raw_type!r}")
                continue
            for particular, codes in (particulars or {}).items():
                self._table[object_type][particular] = {str(c): d for c, d in (codes or {}).items()}

        # Lookup order is MOOE then CO; first match wins
        for object_type in ObjectType:
            for particular, codes in self._table[object_type].items():
                for code, description in codes.items():
                    if code not in self._index:
                        self._index[code] = ResolvedCode(code, object_type, particular, description or "")

        logger.debug(f"Code reference indexed {len(self._index)} codes")

    def __contains__(self, code: str) -> bool:
        return code in self._index

    def __len__(self) -> int:
        return len(self._index)

    def particulars(self, object_type: ObjectType) -> Dict[str, Dict[str, str]]:
        """Particular -> {code: description} for one object type (copy)."""
        return {p: dict(codes) for p, codes in self._table[object_type].items()}

    def description(self, code: str) -> str:
        resolved = self._index.get(code)
        return resolved.description if resolved else ""

    def resolve(
        self,
        code: Optional[str],
        declared_type: Optional[str] = None,
        declared_particular: Optional[str] = None,
        default_particular: str = "Other Expenses",
    ) -> ResolvedCode:
        """
        Resolve a code to its object type and particular.

        Args:
            code: Object-use code from a record (may be missing)
            declared_type: Object type written on the record, used only for unknown codes
            declared_particular: Particular written on the record, used only for unknown codes
            default_particular: Fallback particular for unknown codes

        Returns:
            ResolvedCode; in_reference is False for codes not in the table
        """
        key = str(code).strip() if code is not None else ""
        if key in self._index:
            return self._index[key]
        return ResolvedCode(
            code=key,
            object_type=ObjectType.parse(declared_type) or ObjectType.MOOE,
            particular=declared_particular or default_particular,
            description="",
            in_reference=False,
        )

    def object_type_of(self, code: Optional[str]) -> ObjectType:
        """Object type of a code, MOOE when unknown."""
        return self.resolve(code).object_type


class CodeLayout:
    """
    Column layout of object codes for one report run.

    Starts from the reference (in table order) and appends codes that
    records use but the reference lacks. The reference itself is never
    modified.
    """

    def __init__(self, reference: CodeReference):
        self._groups: Dict[ObjectType, Dict[str, List[str]]] = {t: {} for t in ObjectType}
        self._descriptions: Dict[str, str] = {}
        for object_type in ObjectType:
            for particular, codes in reference.particulars(object_type).items():
                # A code listed twice keeps its first (MOOE-first) position only
                fresh = [c for c in codes if c not in self._descriptions]
                self._groups[object_type][particular] = fresh
                self._descriptions.update({c: codes[c] for c in fresh})

    def ensure(self, resolved: ResolvedCode) -> bool:
        """
        Add a discovered code under its type and particular.

        Returns:
            True if the code was new to the layout
        """
        if not resolved.code:
            return False
        if resolved.code in self._descriptions:
            return False
        self._groups[resolved.object_type].setdefault(resolved.particular, []).append(resolved.code)
        self._descriptions.setdefault(resolved.code, resolved.description)
        return True

    def groups(self, object_type: ObjectType) -> List[Tuple[str, List[str]]]:
        """(particular, codes) pairs for an object type, skipping empty particulars."""
        return [(p, list(codes)) for p, codes in self._groups[object_type].items() if codes]

    def codes(self, object_type: Optional[ObjectType] = None) -> List[str]:
        types: Iterable[ObjectType] = [object_type] if object_type else list(ObjectType)
        return [code for t in types for _, codes in self.groups(t) for code in codes]

    def description(self, code: str) -> str:
        return self._descriptions.get(code, "")
