"""
Request schemas for the JSON API.

Every create/update route validates its body through one of these models;
a ``pydantic.ValidationError`` is turned into a 400 response by the app's
error handlers. Update models have every field optional and are applied with
``model_dump(exclude_unset=True)`` so only submitted fields change; fields
listed in ``not_null`` may be left out but not sent as ``null``.
"""
from datetime import date, datetime, timezone
from typing import Annotated, ClassVar, List, Literal, Optional, Tuple

from pydantic import (
    AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, HttpUrl, StrictBool,
    model_validator,
)


def _upper(value):
    return value.upper() if isinstance(value, str) else value


def _naive_utc(value):
    # Stored timestamps are naive UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


Timestamp = Annotated[datetime, AfterValidator(_naive_utc)]


Gender = Annotated[Literal['MALE', 'FEMALE'], BeforeValidator(_upper)]
Day = Annotated[Literal['MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY'], BeforeValidator(_upper)]
TermName = Literal['First', 'Second', 'Third']
TermStatus = Literal['Active', 'Inactive']
AdminRole = Annotated[Literal['super', 'admin', 'management'], BeforeValidator(lambda v: v.lower() if isinstance(v, str) else v)]
PaymentStatus = Annotated[Literal['PENDING', 'PARTIAL', 'PAID', 'OVERDUE'], BeforeValidator(_upper)]
NewsCategory = Annotated[
    Literal['ACHIEVEMENT', 'SPORTS', 'FACILITIES', 'ARTS', 'EDUCATION', 'COMMUNITY', 'GENERAL'],
    BeforeValidator(_upper),
]
NewsStatus = Annotated[Literal['DRAFT', 'PUBLISHED', 'ARCHIVED'], BeforeValidator(_upper)]
GalleryCategory = Annotated[
    Literal['CAROUSEL', 'LOGO', 'FACILITIES', 'EVENTS', 'STUDENTS', 'TEACHERS', 'ACHIEVEMENTS', 'GENERAL'],
    BeforeValidator(_upper),
]
NonEmpty = Annotated[str, Field(min_length=1)]


class Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')

    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode='after')
    def check_not_null(self):
        for name in self.not_null:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f'{name} cannot be null')
        return self


# --- auth -----------------------------------------------------------------

class LoginRequest(Schema):
    identifier: NonEmpty = Field(..., description="Email, or admission number for students")
    password: NonEmpty


class ChangePasswordRequest(Schema):
    user_id: Optional[int] = Field(None, description="Defaults to the signed-in user")
    old_password: Optional[str] = None
    new_password: str = Field(..., min_length=6)


# --- schools --------------------------------------------------------------

class SchoolCreate(Schema):
    name: NonEmpty
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    schooltype: Optional[str] = None
    subtitle: Optional[str] = None
    contactperson: Optional[str] = None
    contactpersonemail: Optional[EmailStr] = None
    contactpersonphone: Optional[str] = None
    youtube: Optional[str] = None
    facebook: Optional[str] = None
    regnumberprepend: Optional[str] = None
    regnumberappend: Optional[str] = None


class SchoolUpdate(Schema):
    not_null = ('name', 'email')

    name: Optional[NonEmpty] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    schooltype: Optional[str] = None
    subtitle: Optional[str] = None
    contactperson: Optional[str] = None
    contactpersonemail: Optional[EmailStr] = None
    contactpersonphone: Optional[str] = None
    youtube: Optional[str] = None
    facebook: Optional[str] = None
    regnumberprepend: Optional[str] = None
    regnumberappend: Optional[str] = None


# --- people ---------------------------------------------------------------

class AdminCreate(Schema):
    username: NonEmpty
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: AdminRole
    section: Optional[str] = None
    school_id: Optional[int] = None


class AdminUpdate(Schema):
    not_null = ('username', 'email', 'role', 'active')

    username: Optional[NonEmpty] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    role: Optional[AdminRole] = None
    section: Optional[str] = None
    school_id: Optional[int] = None
    active: Optional[bool] = None


class TeacherCreate(Schema):
    title: Optional[str] = None
    firstname: NonEmpty
    surname: NonEmpty
    othername: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    birthday: Optional[date] = None
    bloodgroup: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    address: Optional[str] = None
    section: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    school_id: Optional[int] = None
    subject_ids: List[int] = Field(default_factory=list)


class TeacherUpdate(Schema):
    not_null = ('firstname', 'surname', 'email', 'active')

    title: Optional[str] = None
    firstname: Optional[NonEmpty] = None
    surname: Optional[NonEmpty] = None
    othername: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    birthday: Optional[date] = None
    bloodgroup: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    address: Optional[str] = None
    section: Optional[str] = None
    active: Optional[bool] = None
    subject_ids: Optional[List[int]] = None


class StudentCreate(Schema):
    firstname: NonEmpty
    surname: NonEmpty
    othername: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    birthday: Optional[date] = None
    religion: Optional[str] = None
    studenttype: Optional[str] = None
    house: Optional[str] = None
    bloodgroup: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    section: Optional[str] = None
    admission_date: Optional[date] = None
    class_id: int
    parent_id: Optional[int] = None
    school_id: Optional[int] = None
    password: Optional[str] = Field(None, min_length=6)


class StudentUpdate(Schema):
    not_null = ('firstname', 'surname', 'class_id', 'active')

    firstname: Optional[NonEmpty] = None
    surname: Optional[NonEmpty] = None
    othername: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    birthday: Optional[date] = None
    religion: Optional[str] = None
    studenttype: Optional[str] = None
    house: Optional[str] = None
    bloodgroup: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    section: Optional[str] = None
    class_id: Optional[int] = None
    parent_id: Optional[int] = None
    active: Optional[bool] = None


class ParentCreate(Schema):
    title: Optional[str] = None
    firstname: NonEmpty
    surname: NonEmpty
    othername: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    birthday: Optional[date] = None
    bloodgroup: Optional[str] = None
    occupation: Optional[str] = None
    religion: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    address: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    student_ids: List[int] = Field(default_factory=list)


class ParentUpdate(Schema):
    not_null = ('firstname', 'surname', 'email', 'active')

    title: Optional[str] = None
    firstname: Optional[NonEmpty] = None
    surname: Optional[NonEmpty] = None
    othername: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    occupation: Optional[str] = None
    religion: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    address: Optional[str] = None
    active: Optional[bool] = None
    student_ids: Optional[List[int]] = None


# --- academics ------------------------------------------------------------

class ClassCreate(Schema):
    name: NonEmpty
    category: Optional[str] = None
    level: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    section: Optional[str] = None
    formmaster_id: Optional[int] = None
    school_id: Optional[int] = None


class ClassUpdate(Schema):
    not_null = ('name',)

    name: Optional[NonEmpty] = None
    category: Optional[str] = None
    level: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    section: Optional[str] = None
    formmaster_id: Optional[int] = None


class SubjectCreate(Schema):
    name: NonEmpty
    category: Optional[str] = None
    section: Optional[str] = None
    teacher_id: Optional[int] = None
    school_id: Optional[int] = None


class SubjectUpdate(Schema):
    not_null = ('name',)

    name: Optional[NonEmpty] = None
    category: Optional[str] = None
    section: Optional[str] = None
    teacher_id: Optional[int] = None


class LessonCreate(Schema):
    name: NonEmpty
    day: Day
    start_time: Timestamp
    end_time: Timestamp
    class_id: int
    subject_id: int
    teacher_id: int
    school_id: Optional[int] = None

    @model_validator(mode='after')
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError('end_time must be after start_time')
        return self


class LessonUpdate(Schema):
    not_null = ('name', 'day', 'start_time', 'end_time', 'class_id', 'subject_id', 'teacher_id')

    name: Optional[NonEmpty] = None
    day: Optional[Day] = None
    start_time: Optional[Timestamp] = None
    end_time: Optional[Timestamp] = None
    class_id: Optional[int] = None
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None


class AttendanceMark(Schema):
    student_id: int
    school_id: int
    date: date
    present: StrictBool


class TermCreate(Schema):
    session: NonEmpty
    term: TermName
    start: date
    end: date
    next_term: Optional[date] = None
    days_open: Optional[int] = Field(None, ge=0)
    status: TermStatus = 'Active'
    school_id: Optional[int] = None

    @model_validator(mode='after')
    def check_dates(self):
        if self.end < self.start:
            raise ValueError('end must not be before start')
        return self


class TermUpdate(Schema):
    not_null = ('session', 'term', 'start', 'end', 'status')

    session: Optional[NonEmpty] = None
    term: Optional[TermName] = None
    start: Optional[date] = None
    end: Optional[date] = None
    next_term: Optional[date] = None
    days_open: Optional[int] = Field(None, ge=0)
    status: Optional[TermStatus] = None


class PaymentSetupCreate(Schema):
    amount: float = Field(..., gt=0)
    fees: Optional[str] = None
    partpayment: bool = False
    session: NonEmpty
    term: TermName
    school_id: Optional[int] = None


class PaymentCreate(Schema):
    session: NonEmpty
    term: TermName
    amount: float = Field(..., gt=0)
    status: Optional[PaymentStatus] = None
    student_id: int


class PaymentUpdate(Schema):
    not_null = ('amount', 'status')

    amount: Optional[float] = Field(None, gt=0)
    status: Optional[PaymentStatus] = None


class GradingCreate(Schema):
    title: NonEmpty
    session: NonEmpty
    term: TermName
    section: Optional[str] = None
    grading_policy_id: Optional[int] = None
    school_id: Optional[int] = None


class GradingUpdate(Schema):
    not_null = ('title', 'session', 'term', 'published')

    title: Optional[NonEmpty] = None
    session: Optional[NonEmpty] = None
    term: Optional[TermName] = None
    section: Optional[str] = None
    published: Optional[bool] = None
    grading_policy_id: Optional[int] = None
    school_id: Optional[int] = None


class AssessmentScore(Schema):
    assessment_id: int
    score: float = Field(..., ge=0)


class TraitScore(Schema):
    trait_id: int
    score: Optional[int] = Field(None, ge=0)
    remark: Optional[str] = None


class StudentScore(Schema):
    student_id: int
    subject_id: int
    assessments: List[AssessmentScore] = Field(default_factory=list)
    traits: List[TraitScore] = Field(default_factory=list)
    remark: Optional[str] = None


class ScoreSheet(Schema):
    scores: List[StudentScore] = Field(..., min_length=1)


# --- notices and content --------------------------------------------------

class EventCreate(Schema):
    title: NonEmpty
    description: Optional[str] = None
    start_time: Timestamp
    end_time: Timestamp
    class_id: Optional[int] = None
    school_id: Optional[int] = None

    @model_validator(mode='after')
    def check_times(self):
        if self.end_time < self.start_time:
            raise ValueError('end_time must not be before start_time')
        return self


class EventUpdate(Schema):
    not_null = ('title', 'start_time', 'end_time')

    title: Optional[NonEmpty] = None
    description: Optional[str] = None
    start_time: Optional[Timestamp] = None
    end_time: Optional[Timestamp] = None
    class_id: Optional[int] = None


class AnnouncementCreate(Schema):
    title: NonEmpty
    description: Optional[str] = None
    date: Optional[Timestamp] = None
    class_id: Optional[int] = None
    school_id: Optional[int] = None


class AnnouncementUpdate(Schema):
    not_null = ('title', 'date')

    title: Optional[NonEmpty] = None
    description: Optional[str] = None
    date: Optional[Timestamp] = None
    class_id: Optional[int] = None


class NewsCreate(Schema):
    title: NonEmpty
    content: NonEmpty
    excerpt: Optional[str] = None
    author: Optional[str] = None
    category: NewsCategory = 'GENERAL'
    status: NewsStatus = 'DRAFT'
    featured: bool = False
    image: Optional[str] = None
    read_time: Optional[int] = Field(None, ge=0)
    published_at: Optional[Timestamp] = None
    school_id: Optional[int] = None


class NewsUpdate(Schema):
    not_null = ('title', 'content', 'category', 'status', 'featured')

    title: Optional[NonEmpty] = None
    content: Optional[NonEmpty] = None
    excerpt: Optional[str] = None
    author: Optional[str] = None
    category: Optional[NewsCategory] = None
    status: Optional[NewsStatus] = None
    featured: Optional[bool] = None
    image: Optional[str] = None
    read_time: Optional[int] = Field(None, ge=0)
    published_at: Optional[Timestamp] = None


class GalleryCreate(Schema):
    title: NonEmpty
    description: Optional[str] = None
    image_url: HttpUrl
    category: GalleryCategory = 'GENERAL'
    is_active: bool = True
    order: int = 0
    school_id: Optional[int] = None


class AssessmentItem(Schema):
    name: NonEmpty
    weight: float = Field(..., ge=0)
    max_score: int = Field(..., gt=0)


class TraitItem(Schema):
    name: NonEmpty
    category: Annotated[Literal['AFFECTIVE', 'PSYCHOMOTOR', 'BEHAVIOURAL', 'COGNITIVE'], BeforeValidator(_upper)]


class GradingPolicyCreate(Schema):
    title: NonEmpty
    description: Optional[str] = None
    pass_mark: int = Field(40, ge=0)
    max_score: int = Field(100, gt=0)
    school_id: Optional[int] = None
    assessments: List[AssessmentItem] = Field(default_factory=list)
    traits: List[TraitItem] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_assessments(self):
        names = [a.name.lower() for a in self.assessments]
        if len(names) != len(set(names)):
            raise ValueError('assessment names must be unique')
        if sum(a.max_score for a in self.assessments) > self.max_score:
            raise ValueError('assessment max scores exceed the policy max score')
        return self
