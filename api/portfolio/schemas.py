"""
Pydantic schemas for portfolio documents.

Each entity kind has a create model and a partial update model. The update
models are derived from the create models with every field optional, so a
PATCH body can only carry fields that exist on that kind, and only the
fields present in the request are written.

`is_active` and `display_order` are shared by every kind and live in their
own columns; everything else is stored in the `data` jsonb document.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

ProjectType = Literal["mobile", "web", "desktop", "api", "other"]
ProjectStatus = Literal["completed", "in-progress", "planned", "archived"]
MyWorkType = Literal["app", "website", "tool", "system"]
SectionType = Literal["interest", "language", "achievement", "volunteer", "other"]

COLUMN_FIELDS = frozenset({"is_active", "display_order"})


class DocumentBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool = True
    display_order: int = 0


# --- certifications --------------------------------------------------------


class CertificationCreate(DocumentBase):
    name: str = Field(..., min_length=1, max_length=300)
    issuer: str = Field(..., min_length=1, max_length=300)
    issue_date: date | None = None
    expired: date | None = None
    credential_id: str | None = Field(default=None, max_length=300)
    credential_url: str | None = Field(default=None, max_length=2000)
    skills: list[str] = Field(default_factory=list)
    certificate_url: str | None = Field(default=None, max_length=2000)
    description: str | None = None


# --- skills ----------------------------------------------------------------


class SkillCategoryCreate(DocumentBase):
    category: str = Field(..., min_length=1, max_length=200)
    skills: list[str] = Field(..., min_length=1)
    description: str | None = None


# --- projects --------------------------------------------------------------


class ProjectCreate(DocumentBase):
    name: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)
    technologies: list[str] = Field(..., min_length=1)
    type: ProjectType
    github: str | None = Field(default=None, max_length=2000)
    live_url: str | None = Field(default=None, max_length=2000)
    images: list[str] = Field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus = "completed"
    is_featured: bool = False


# --- work experience -------------------------------------------------------


class WorkExperienceCreate(DocumentBase):
    company: str = Field(..., min_length=1, max_length=300)
    role: str = Field(..., min_length=1, max_length=300)
    period: str = Field(..., min_length=1, max_length=200)
    start_date: date | None = None
    end_date: date | None = None
    location: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)
    achievements: list[str] = Field(..., min_length=1)
    technologies: list[str] = Field(default_factory=list)
    is_current_role: bool = False


# --- additional sections ---------------------------------------------------


class LanguageEntry(BaseModel):
    language: str = Field(..., min_length=1, max_length=100)
    proficiency: str | None = Field(default=None, max_length=100)


class AchievementEntry(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    year: str | None = Field(default=None, max_length=20)
    description: str | None = None


class VolunteerEntry(BaseModel):
    organization: str = Field(..., min_length=1, max_length=300)
    role: str | None = Field(default=None, max_length=300)
    period: str | None = Field(default=None, max_length=200)
    description: str | None = None


class InterestSection(BaseModel):
    type: Literal["interest"] = "interest"
    content: list[str] = Field(..., min_length=1)


class LanguageSection(BaseModel):
    type: Literal["language"] = "language"
    content: list[LanguageEntry] = Field(..., min_length=1)


class AchievementSection(BaseModel):
    type: Literal["achievement"] = "achievement"
    content: list[AchievementEntry] = Field(..., min_length=1)


class VolunteerSection(BaseModel):
    type: Literal["volunteer"] = "volunteer"
    content: list[VolunteerEntry] = Field(..., min_length=1)


class OtherSection(BaseModel):
    # Free-form; anything JSON-serializable.
    type: Literal["other"] = "other"
    content: Any


Section = Annotated[
    Union[InterestSection, LanguageSection, AchievementSection, VolunteerSection, OtherSection],
    Field(discriminator="type"),
]


class AdditionalSectionCreate(DocumentBase):
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    section: Section


# --- my work ---------------------------------------------------------------


class Impact(BaseModel):
    metrics: str = ""
    business_value: str = ""


class Links(BaseModel):
    live_demo: str = ""
    github_repo: str = ""
    app_store: str = ""
    play_store: str = ""
    case_study: str = ""


class Screenshot(BaseModel):
    url: str = Field(..., min_length=1, max_length=2000)
    caption: str = ""


class MyWorkCreate(DocumentBase):
    title: str = Field(..., min_length=1, max_length=300)
    type: MyWorkType
    description: str | None = None
    role: str | None = Field(default=None, max_length=300)
    company: str | None = Field(default=None, max_length=300)
    start_date: date | None = None
    end_date: date | None = None
    technologies: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    solutions: list[str] = Field(default_factory=list)
    impact: Impact = Field(default_factory=Impact)
    links: Links = Field(default_factory=Links)
    screenshots: list[Screenshot] = Field(default_factory=list)


# --- partial updates -------------------------------------------------------


class _PartialBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


def partial_model(model: type[BaseModel], name: str) -> type[BaseModel]:
    """
    Same fields as `model`, all optional with a None default.

    Field constraints (lengths, enums, the section discriminator) still apply
    to fields that are sent.
    """
    fields: dict[str, Any] = {}
    for field_name, info in model.model_fields.items():
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        fields[field_name] = (
            Optional[annotation],
            Field(default=None, discriminator=info.discriminator),
        )
    return create_model(name, __base__=_PartialBase, **fields)


CertificationUpdate = partial_model(CertificationCreate, "CertificationUpdate")
SkillCategoryUpdate = partial_model(SkillCategoryCreate, "SkillCategoryUpdate")
ProjectUpdate = partial_model(ProjectCreate, "ProjectUpdate")
WorkExperienceUpdate = partial_model(WorkExperienceCreate, "WorkExperienceUpdate")
AdditionalSectionUpdate = partial_model(AdditionalSectionCreate, "AdditionalSectionUpdate")
MyWorkUpdate = partial_model(MyWorkCreate, "MyWorkUpdate")


def split_payload(payload: BaseModel, *, partial: bool) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Split a create/update model into (column values, jsonb document fields).

    Partial payloads keep only the fields that were sent.
    """
    if partial:
        values = payload.model_dump(mode="json", exclude_unset=True)
    else:
        values = payload.model_dump(mode="json")
    columns = {k: v for k, v in values.items() if k in COLUMN_FIELDS}
    data = {k: v for k, v in values.items() if k not in COLUMN_FIELDS}
    return columns, data


# --- entity registry -------------------------------------------------------


@dataclass(frozen=True)
class EntityKind:
    kind: str  # value of portfolio_documents.kind
    path: str  # URL segment under /api/portfolio
    label: str  # used in messages: "Project not found."
    collection: str  # key of the list in responses
    create_model: type[DocumentBase]
    update_model: type[BaseModel]
    name_fields: tuple[str, ...]

    def display_name(self, document: dict[str, Any]) -> str:
        for field_name in self.name_fields:
            value = document.get(field_name)
            if value:
                return str(value)
        return "Unknown"


CERTIFICATIONS = EntityKind(
    kind="certification",
    path="certifications",
    label="Certification",
    collection="certifications",
    create_model=CertificationCreate,
    update_model=CertificationUpdate,
    name_fields=("name",),
)
SKILLS = EntityKind(
    kind="skill_category",
    path="skills",
    label="Skill category",
    collection="skill_categories",
    create_model=SkillCategoryCreate,
    update_model=SkillCategoryUpdate,
    name_fields=("category",),
)
PROJECTS = EntityKind(
    kind="project",
    path="projects",
    label="Project",
    collection="projects",
    create_model=ProjectCreate,
    update_model=ProjectUpdate,
    name_fields=("name",),
)
WORK_EXPERIENCE = EntityKind(
    kind="work_experience",
    path="work-experience",
    label="Work experience",
    collection="work_experience",
    create_model=WorkExperienceCreate,
    update_model=WorkExperienceUpdate,
    name_fields=("company", "role"),
)
ADDITIONAL_SECTIONS = EntityKind(
    kind="additional_section",
    path="additional",
    label="Additional section",
    collection="additional_sections",
    create_model=AdditionalSectionCreate,
    update_model=AdditionalSectionUpdate,
    name_fields=("title",),
)
MY_WORK = EntityKind(
    kind="my_work",
    path="mywork",
    label="Work item",
    collection="my_work",
    create_model=MyWorkCreate,
    update_model=MyWorkUpdate,
    name_fields=("title",),
)

ENTITY_KINDS: tuple[EntityKind, ...] = (
    CERTIFICATIONS,
    SKILLS,
    PROJECTS,
    WORK_EXPERIENCE,
    ADDITIONAL_SECTIONS,
    MY_WORK,
)


def bulk_update_model(kind: EntityKind) -> type[BaseModel]:
    return create_model(
        f"{kind.update_model.__name__}Bulk",
        ids=(list[int], Field(..., min_length=1)),
        updates=(kind.update_model, ...),
    )


class BulkDeleteRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)
