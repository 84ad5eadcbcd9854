from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel


class TranslationResponse(BaseModel):
    english: Optional[str] = None
    urdu: Optional[str] = None
    roman: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    word: str
    translation: Optional[TranslationResponse] = None
    image: Optional[str] = None
    audio: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class MeaningResponse(BaseModel):
    language: str
    value: str


class DialectEntryResponse(BaseModel):
    word: str
    dialect: str
    meanings: List[MeaningResponse]
    audio: Optional[str] = None
    description: Optional[str] = None


class WordResponse(BaseModel):
    id: int
    category_id: int
    category: Optional[CategoryResponse] = None
    uploaded_by: Optional[str] = None
    image: Optional[str] = None
    words: List[DialectEntryResponse]
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class MoveRequest(BaseModel):
    newCategory: Optional[Union[int, str]] = None


def category_out(category) -> dict:
    return CategoryResponse.model_validate(category).model_dump(mode="json")


def word_out(word) -> dict:
    return WordResponse.model_validate(word).model_dump(mode="json")
