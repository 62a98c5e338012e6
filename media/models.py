# media/models.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

class Dimensions(BaseModel):
    width: int
    height: int

class StoredFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    logical_name: str = Field(alias="logicalName")
    extension: str
    size_bytes: int = Field(0, alias="sizeBytes")
    created_at: datetime = Field(alias="createdAt")
    modified_at: datetime = Field(alias="modifiedAt")
    dimensions: Optional[Dimensions] = None

    @property
    def filename(self) -> str:
        return f"{self.logical_name}{self.extension}"

class ChapterPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    image_url: str = Field(alias="imageURL")     # nom de fichier généré
    order: int
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: int = Field(0, alias="fileSizeBytes")

def _opaque_str(value: Union[str, int, None]) -> Optional[str]:
    # les clients envoient parfois des ids/numéros en entier
    if value is None:
        return None
    return str(value).strip()

class PageIn(BaseModel):
    """Page déclarée par le client : référence (imageURL) ou données inline (imageData)."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageURL")
    image_data: Optional[str] = Field(None, alias="imageData")
    order: int

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Union[str, int, None]) -> Optional[str]:
        return _opaque_str(value)

    @model_validator(mode="after")
    def _reference_or_data(self) -> "PageIn":
        if not self.image_data and not self.image_url:
            raise ValueError("each page needs imageURL or imageData")
        return self

class AnalyzePagesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    serie_id: str = Field(alias="serieID")
    volume: str
    index: str
    pages: List[PageIn] = Field(default_factory=list)

    @field_validator("serie_id", "volume", "index", mode="before")
    @classmethod
    def _required_text(cls, value: Union[str, int, None]) -> str:
        value = _opaque_str(value)
        if not value:
            raise ValueError("field required")
        return value
