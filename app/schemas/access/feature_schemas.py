from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from app.models.enums.access_type import AccessType


class FeatureIn(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    allowed_roles: List[str]

    @field_validator("allowed_roles")
    @classmethod
    def dedupe_roles(cls, v):
        return list(dict.fromkeys(r.strip() for r in v if r and r.strip()))


class FeatureOut(BaseModel):
    id: str
    axis: AccessType
    name: str
    description: str
    allowed_roles: List[str]


class FeatureListData(BaseModel):
    axis: AccessType
    items: List[FeatureOut]


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = ""


class RoleOut(BaseModel):
    id: str
    axis: AccessType
    name: str
    description: str


class RoleListData(BaseModel):
    axis: AccessType
    items: List[RoleOut]
