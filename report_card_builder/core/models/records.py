#!/usr/bin/env python3
"""
DATA MODELS - Pydantic schemas for grade rows, students and report elements
Type-safe data structures shared by the calculators, the store and the renderer

COMPREHENSIVE DATA VALIDATION:
✅ Grade Records: student, subject, trimester, score (0-100, two decimals)
✅ Students: names, course, active flag
✅ Courses: display name and educational level
✅ Subjects: short/long names, regulatory area, display order
✅ Grouping Rules: many-to-one subject collapse for MINEDU centralizers

VALIDATION RULES:
- Trimester must be 1, 2 or 3
- Scores are clamped to 0-100 and kept with two decimals
- Grouping rule member codes behave as an ordered set

Priority: CRITICAL - Foundation for every calculation and report
Dependencies: Pydantic for validation
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Period(str, Enum):
    """Grading period: one of three trimesters or the synthetic annual period"""

    T1 = "1"
    T2 = "2"
    T3 = "3"
    ANNUAL = "FINAL"

    @classmethod
    def parse(cls, value: Union["Period", int, str]) -> "Period":
        """Accept 1, "1", "T1", "FINAL", "annual" or "anual" """
        if isinstance(value, Period):
            return value
        text = str(value).strip().upper()
        if text.startswith("T") and text[1:] in ("1", "2", "3"):
            text = text[1:]
        if text in ("ANNUAL", "ANUAL", "A"):
            text = "FINAL"
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown grading period: {value!r}") from None

    @classmethod
    def trimesters(cls) -> List["Period"]:
        return [cls.T1, cls.T2, cls.T3]

    @property
    def number(self) -> Optional[int]:
        """Trimester number, None for the annual period"""
        if self is Period.ANNUAL:
            return None
        return int(self.value)

    @property
    def label(self) -> str:
        return {
            Period.T1: "Primer Trimestre",
            Period.T2: "Segundo Trimestre",
            Period.T3: "Tercer Trimestre",
            Period.ANNUAL: "Promedio Anual",
        }[self]

    @property
    def short_label(self) -> str:
        return {
            Period.T1: "1er",
            Period.T2: "2do",
            Period.T3: "3er",
            Period.ANNUAL: "Anual",
        }[self]

    @property
    def file_token(self) -> str:
        if self is Period.ANNUAL:
            return "Anual"
        return f"T{self.value}"


class Level(str, Enum):
    """Educational level of a course"""

    INITIAL = "Inicial"
    PRIMARY = "Primaria"
    SECONDARY = "Secundaria"

    @property
    def sort_rank(self) -> int:
        return {Level.INITIAL: 1, Level.PRIMARY: 2, Level.SECONDARY: 3}[self]


def level_sort_rank(level: Union[Level, str, None]) -> int:
    """Sort rank for a level; unknown levels go last"""
    try:
        return Level(level).sort_rank
    except ValueError:
        return 99


class GradeRecord(BaseModel):
    """One stored grade: a student's score in a subject for one trimester"""

    model_config = ConfigDict(frozen=True)

    student_id: str = Field(..., description="Student identifier (cod_moodle)")
    subject_code: str = Field(..., description="Subject code")
    period: Literal[1, 2, 3] = Field(..., description="Trimester number")
    score: float = Field(..., description="Score 0.00-100.00")

    @field_validator("student_id", "subject_code", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        """CSV loaders hand ids over as ints"""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v

    @field_validator("period", mode="before")
    @classmethod
    def coerce_period(cls, v):
        if isinstance(v, Period):
            v = v.number
        if isinstance(v, str) and v.strip().isdigit():
            return int(v)
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        """Clamp to [0, 100] and keep two-decimal precision"""
        value = float(v)
        value = min(max(value, 0.0), 100.0)
        return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class Student(BaseModel):
    """Student as read from the store"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Student identifier (cod_moodle)")
    given_names: str = Field("", description="Given names")
    surname: str = Field("", description="Surnames")
    course_code: str = Field(..., description="Course short code")
    active: bool = Field(True, description="Inactive students are excluded everywhere")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v

    @field_validator("given_names", "surname", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def full_name(self) -> str:
        """Report display form: "Surname, Given names" """
        return f"{self.surname}, {self.given_names}"


class Course(BaseModel):
    """Course (grade/section) with its educational level"""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Course short code (nombre_corto)")
    display_name: str = Field(..., description="Course long name")
    level: str = Field(..., description="Inicial, Primaria or Secundaria")

    @property
    def level_rank(self) -> int:
        return level_sort_rank(self.level)


class Subject(BaseModel):
    """Subject taught in a course"""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Subject code")
    short_name: str = Field(..., description="Column header name")
    display_name: str = Field(..., description="Full subject name")
    course_code: str = Field(..., description="Owning course")
    area_id: Optional[str] = Field(None, description="Regulatory area for report cards")
    display_order: Optional[int] = Field(None, description="Column/row order, None sorts last")

    @field_validator("area_id", mode="before")
    @classmethod
    def coerce_area(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)


class Area(BaseModel):
    """Regulatory subject area used to group report card rows"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)


class GroupingRule(BaseModel):
    """Many-to-one collapse of subjects into one MINEDU column"""

    model_config = ConfigDict(frozen=True)

    area_id: str = Field(..., description="Regulatory area id")
    group_name: str = Field(..., description="Column header")
    display_label: str = Field(..., description="Long label for the legend")
    member_subject_codes: List[str] = Field(default_factory=list, description="Ordered set of subject codes")
    course_code: Optional[str] = Field(None, description="Course the rule applies to")

    @field_validator("area_id", mode="before")
    @classmethod
    def coerce_area(cls, v):
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)

    @field_validator("member_subject_codes", mode="before")
    @classmethod
    def dedupe_members(cls, v):
        seen = []
        for code in v or []:
            if code is None or code == "":
                continue
            code = str(code)
            if code not in seen:
                seen.append(code)
        return seen

    @property
    def key(self) -> Tuple[str, str]:
        return (self.area_id, self.group_name)


def rules_from_rows(rows: Iterable[Dict]) -> List[GroupingRule]:
    """
    Fold one-row-per-member store rows into GroupingRule objects

    Rows carry id_area/area_id, nombre_grupo/group_name, nombre_mostrar/display_label,
    materia_codigo/subject_code and optionally curso_corto/course_code.
    Rows without a subject code are ignored.
    """
    folded: Dict[tuple, Dict] = {}
    for row in rows:
        code = row.get("materia_codigo", row.get("subject_code"))
        if code is None or code == "":
            continue
        area_id = row.get("id_area", row.get("area_id"))
        group_name = row.get("nombre_grupo", row.get("group_name"))
        course_code = row.get("curso_corto", row.get("course_code"))
        key = (str(area_id), group_name, course_code)
        if key not in folded:
            folded[key] = {
                "area_id": area_id,
                "group_name": group_name,
                "display_label": row.get("nombre_mostrar", row.get("display_label", group_name)),
                "member_subject_codes": [],
                "course_code": course_code,
            }
        folded[key]["member_subject_codes"].append(str(code))
    return [GroupingRule(**data) for data in folded.values()]


class RankEntry(BaseModel):
    """One ranked student (derived, never persisted)"""

    model_config = ConfigDict(frozen=True)

    student: Student
    average: float
    position: int = Field(..., ge=1, description="1-based, consecutive")
    scope_label: str


class FamilyMember(BaseModel):
    """A sibling with the average for the selected period (None = no data)"""

    model_config = ConfigDict(frozen=True)

    student: Student
    course_name: str = ""
    average: Optional[float] = None


class FamilyGroup(BaseModel):
    """Students sharing a normalized surname"""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Normalized surname")
    surname: str = Field(..., description="Surname as written for the first member")
    members: List[FamilyMember] = Field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.members)


class GroupElement(BaseModel):
    """A regulatory group column"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["group"] = "group"
    key: Tuple[str, str]
    label: str
    display_label: str
    member_codes: List[str]
    order: int


class SubjectElement(BaseModel):
    """An individually displayed subject column"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["subject"] = "subject"
    code: str
    label: str
    order: int


OrderedElement = Union[GroupElement, SubjectElement]


__all__ = [
    "Period",
    "Level",
    "level_sort_rank",
    "GradeRecord",
    "Student",
    "Course",
    "Subject",
    "Area",
    "GroupingRule",
    "rules_from_rows",
    "RankEntry",
    "FamilyMember",
    "FamilyGroup",
    "GroupElement",
    "SubjectElement",
    "OrderedElement",
]
